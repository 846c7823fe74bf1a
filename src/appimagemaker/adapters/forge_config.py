"""Loading of maker configuration files and package metadata."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Tuple

import yaml

from appimagemaker.domain.errors import ConfigurationError
from appimagemaker.domain.request import MAKER_IDENTIFIERS, MakerDescriptor, PackageMetadata, ResolvableMaker
from appimagemaker.resources import schema_validator

_SCHEMA = "forge_config.schema.json"
_MAKER_SCHEMA = "maker_config.schema.json"


@dataclass(frozen=True)
class ForgeConfig:
    executable_name: str | None = None
    makers: Tuple[MakerDescriptor, ...] = ()


def _schema_errors(schema: str, data: Any, prefix: Tuple[Any, ...] = ()) -> List[str]:
    errors = sorted(
        schema_validator(schema).iter_errors(data),
        key=lambda error: [str(item) for item in error.absolute_path],
    )
    return [
        f"{'.'.join(str(item) for item in (*prefix, *error.absolute_path)) or '<root>'}: {error.message}"
        for error in errors
    ]


def parse_forge_config(data: Mapping[str, Any] | None) -> ForgeConfig:
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("maker configuration must be a mapping")
    details = _schema_errors(_SCHEMA, dict(data))
    if not details:
        # sibling makers own their config shapes; only ours is checked
        for index, entry in enumerate(data.get("makers") or []):
            if entry["name"] in MAKER_IDENTIFIERS:
                details = _schema_errors(_MAKER_SCHEMA, entry.get("config") or {}, ("makers", index, "config"))
                break
    if details:
        raise ConfigurationError(f"Invalid maker configuration: {'; '.join(details)}")

    packager = data.get("packagerConfig") or {}
    makers = []
    for entry in data.get("makers") or []:
        platforms = entry.get("platforms")
        makers.append(
            ResolvableMaker(
                name=entry["name"],
                config=entry.get("config") or {},
                platforms=tuple(platforms) if platforms is not None else None,
            )
        )
    return ForgeConfig(executable_name=packager.get("executableName"), makers=tuple(makers))


def load_forge_config(path: Path) -> ForgeConfig:
    if not path.exists():
        raise ConfigurationError(f"Maker configuration missing: {path}")
    try:
        data = yaml.safe_load(path.read_text("utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Maker configuration {path} is not valid YAML: {exc}") from exc
    return parse_forge_config(data)


def load_package_metadata(path: Path) -> PackageMetadata:
    if not path.exists():
        raise ConfigurationError(f"Package metadata missing: {path}")
    try:
        data = json.loads(path.read_text("utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Package metadata {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Package metadata {path} must contain a JSON object")
    return PackageMetadata.from_dict(data)


__all__ = ["ForgeConfig", "load_forge_config", "load_package_metadata", "parse_forge_config"]
