from __future__ import annotations

from pathlib import Path

import pytest

from appimagemaker.settings import RuntimeSettings


@pytest.fixture()
def runtime_settings(tmp_path: Path) -> RuntimeSettings:
    base = tmp_path / "runtime"
    home = base / "home"
    state_dir = base / "state"
    log_dir = base / "logs"
    for directory in (home, state_dir, log_dir):
        directory.mkdir(parents=True, exist_ok=True)
    return RuntimeSettings(
        home_dir=home,
        state_dir=state_dir,
        log_dir=log_dir,
        icon_asset_root=base / "icons",
        app_builder="app-builder",
        cli_version="0.1.0",
    )


@pytest.fixture()
def app_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project" / "out" / "Demo-linux-x64"
    path.mkdir(parents=True, exist_ok=True)
    (path / "chrome-sandbox").write_text("", encoding="utf-8")
    return path
