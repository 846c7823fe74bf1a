"""Inputs of a single AppImage build."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Tuple, Union

from .errors import ConfigurationError

MAKER_PACKAGE_NAME = "appimagemaker"
LEGACY_MAKER_PACKAGE_NAME = "electron-forge-maker-appimage"
MAKER_IDENTIFIERS = (MAKER_PACKAGE_NAME, LEGACY_MAKER_PACKAGE_NAME)


@dataclass(frozen=True)
class PackageMetadata:
    """Subset of package.json the maker cares about."""

    name: str
    version: str
    product_name: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PackageMetadata":
        version = data.get("version")
        if not isinstance(version, str) or not version.strip():
            raise ConfigurationError("package metadata must define a non-empty string 'version'")
        name = data.get("name", "")
        product_name = data.get("productName")
        description = data.get("description")
        for key, value in (("name", name), ("productName", product_name), ("description", description)):
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"package metadata field '{key}' must be a string")
        return cls(name=name, version=version, product_name=product_name, description=description)


@dataclass(frozen=True)
class MakerOverrides:
    """User supplied maker configuration; every field is optional."""

    icon: str | None = None
    mime_types: Tuple[str, ...] = ()
    chmod_chrome_sandbox: str | None = None
    template: str | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "MakerOverrides":
        if config is None:
            return cls()
        if not isinstance(config, Mapping):
            raise ConfigurationError("maker config must be a mapping")
        options = config.get("options") or {}
        if not isinstance(options, Mapping):
            raise ConfigurationError("maker config 'options' must be a mapping")

        mime_types = options.get("mimeType") or []
        if not isinstance(mime_types, list) or not all(isinstance(item, str) for item in mime_types):
            raise ConfigurationError("maker config 'options.mimeType' must be a list of strings")

        return cls(
            icon=_optional_str(options, "icon", "options.icon"),
            mime_types=tuple(mime_types),
            chmod_chrome_sandbox=_optional_str(config, "chmodChromeSandbox", "chmodChromeSandbox"),
            template=_optional_str(config, "template", "template"),
        )


def _optional_str(source: Mapping[str, Any], key: str, label: str) -> str | None:
    value = source.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        hint = " (quote permission modes in YAML)" if key == "chmodChromeSandbox" else ""
        raise ConfigurationError(f"maker config '{label}' must be a string{hint}")
    return value


@dataclass(frozen=True)
class ResolvableMaker:
    """Maker referenced by package name, with its raw configuration mapping."""

    name: str
    config: Mapping[str, Any] = field(default_factory=dict)
    platforms: Tuple[str, ...] | None = None


@dataclass(frozen=True)
class MakerInstance:
    """Maker constructed in code, carrying already-parsed overrides."""

    name: str
    overrides: MakerOverrides = field(default_factory=MakerOverrides)


MakerDescriptor = Union[ResolvableMaker, MakerInstance]


def find_maker_overrides(
    makers: Iterable[MakerDescriptor],
    identifiers: Iterable[str] = MAKER_IDENTIFIERS,
) -> MakerOverrides | None:
    """Return the overrides of the first maker registered under one of our identifiers."""

    wanted = set(identifiers)
    for maker in makers:
        if maker.name not in wanted:
            continue
        if isinstance(maker, MakerInstance):
            return maker.overrides
        if isinstance(maker, ResolvableMaker):
            return MakerOverrides.from_config(maker.config)
    return None


@dataclass(frozen=True)
class BundleRequest:
    """Everything the orchestrator hands over for one build."""

    app_dir: Path
    app_name: str
    make_dir: Path
    arch: str
    package: PackageMetadata
    platform: str = "linux"
    executable_name: str | None = None
    makers: Tuple[MakerDescriptor, ...] = ()

    def overrides(self) -> MakerOverrides | None:
        return find_maker_overrides(self.makers)


__all__ = [
    "BundleRequest",
    "LEGACY_MAKER_PACKAGE_NAME",
    "MAKER_IDENTIFIERS",
    "MAKER_PACKAGE_NAME",
    "MakerDescriptor",
    "MakerInstance",
    "MakerOverrides",
    "PackageMetadata",
    "ResolvableMaker",
    "find_maker_overrides",
]
