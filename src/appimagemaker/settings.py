"""Runtime settings for the AppImage maker."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from appimagemaker import __version__

HOME_ENV = "APPIMAGEMAKER_HOME"
ICON_ROOT_ENV = "APPIMAGEMAKER_ICON_ROOT"
APP_BUILDER_ENV = "APPIMAGEMAKER_APP_BUILDER"


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    state_dir: Path
    log_dir: Path
    icon_asset_root: Path
    app_builder: str = "app-builder"
    cli_version: str = __version__

    @property
    def telemetry_log(self) -> Path:
        return self.log_dir / "telemetry.jsonl"


def _default_home_dir() -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".appimagemaker"


def load_settings() -> RuntimeSettings:
    base = _default_home_dir()
    icon_root = os.environ.get(ICON_ROOT_ENV)
    return RuntimeSettings(
        home_dir=base,
        state_dir=base / "state",
        log_dir=base / "logs",
        icon_asset_root=Path(icon_root).expanduser() if icon_root else base / "icons" / "electron-linux",
        app_builder=os.environ.get(APP_BUILDER_ENV) or "app-builder",
    )


SETTINGS = load_settings()
