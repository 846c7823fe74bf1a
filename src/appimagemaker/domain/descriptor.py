"""Reconciles defaults, package metadata and maker overrides into one bundle descriptor.

Everything here is pure: it reads the request and overrides and never touches
the filesystem.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

from .errors import ConfigurationError
from .request import BundleRequest, MakerOverrides

DESKTOP_ENTRY_HEADER = "[Desktop Entry]"
VERSION_KEY = "X-AppImage-Version"
DEFAULT_CATEGORY = "Utility"
DEFAULT_ICON_SIZES = (16, 32, 48, 64, 128, 256)
ASSOCIATION_EXTENSION = "AppImage"


def resolve_executable_name(executable_name: str | None, app_name: str) -> str:
    resolved = executable_name or app_name
    if not isinstance(resolved, str) or not resolved:
        raise ConfigurationError("executable name resolved to an empty value")
    return resolved


def _single_line(value: str | None) -> str:
    # desktop entries are newline delimited
    if value is None:
        return ""
    return " ".join(value.splitlines())


@dataclass(frozen=True)
class LaunchDescriptor:
    """Ordered key/value pairs rendered into the embedded .desktop file."""

    entries: Tuple[Tuple[str, str], ...]

    @classmethod
    def build(
        cls,
        *,
        app_name: str,
        executable_name: str,
        version: str,
        description: str | None,
    ) -> "LaunchDescriptor":
        entries = (
            ("Name", app_name),
            ("Exec", executable_name),
            ("Terminal", "false"),
            ("Type", "Application"),
            ("Icon", executable_name),
            (VERSION_KEY, version),
            ("Comment", description),
            ("Categories", DEFAULT_CATEGORY),
        )
        return cls(tuple((key, _single_line(value)) for key, value in entries))

    def as_dict(self) -> Dict[str, str]:
        return dict(self.entries)

    def render(self) -> str:
        lines = [DESKTOP_ENTRY_HEADER]
        lines.extend(f"{key}={value}" for key, value in self.entries)
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class IconEntry:
    file: Path
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file": str(self.file), "size": self.size}


def _icon_base(app_dir: Path) -> Path:
    # packaged apps live in out/<name>-<platform>-<arch>; project root is two levels up
    return app_dir.parent.parent


def build_icon_manifest(app_dir: Path, icon_override: str | None, icon_asset_root: Path) -> Tuple[IconEntry, ...]:
    """Return the single custom icon (size 0) or the six bundled default sizes."""

    base = _icon_base(app_dir)
    if icon_override is not None:
        return (IconEntry(file=Path(os.path.normpath(base / icon_override)), size=0),)
    root = Path(os.path.normpath(base / icon_asset_root))
    return tuple(IconEntry(file=root / f"{size}x{size}.png", size=size) for size in DEFAULT_ICON_SIZES)


@dataclass(frozen=True)
class FileAssociation:
    ext: str
    mime_type: str

    def to_dict(self) -> Dict[str, str]:
        return {"ext": self.ext, "mimeType": self.mime_type}


@dataclass(frozen=True)
class AssociationOptions:
    """File associations merged into the backend configuration at top level."""

    file_associations: Tuple[FileAssociation, ...] = ()
    mime_types: Tuple[str, ...] | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "fileAssociations": [item.to_dict() for item in self.file_associations],
        }
        if self.mime_types is not None:
            payload["mimeTypes"] = list(self.mime_types)
        return payload


def build_association_options(mime_types: Sequence[str] | None) -> AssociationOptions:
    if not mime_types:
        return AssociationOptions()
    primary = FileAssociation(ext=ASSOCIATION_EXTENSION, mime_type=mime_types[0])
    rest = tuple(mime_types[1:])
    return AssociationOptions(file_associations=(primary,), mime_types=rest or None)


@dataclass(frozen=True)
class BundleDescriptor:
    """Fully reconciled view of one AppImage build."""

    product_name: str
    executable_name: str
    launch: LaunchDescriptor
    icons: Tuple[IconEntry, ...]
    associations: AssociationOptions

    def to_configuration(self) -> Dict[str, Any]:
        configuration: Dict[str, Any] = {
            "productName": self.product_name,
            "productFilename": self.product_name,
            "desktopEntry": self.launch.render(),
            "executableName": self.executable_name,
            "icons": [icon.to_dict() for icon in self.icons],
        }
        configuration.update(self.associations.to_dict())
        return configuration


def reconcile(
    request: BundleRequest,
    overrides: MakerOverrides | None,
    *,
    icon_asset_root: Path,
) -> BundleDescriptor:
    overrides = overrides or MakerOverrides()
    executable_name = resolve_executable_name(request.executable_name, request.app_name)
    launch = LaunchDescriptor.build(
        app_name=request.app_name,
        executable_name=executable_name,
        version=request.package.version,
        description=request.package.description,
    )
    return BundleDescriptor(
        product_name=request.app_name,
        executable_name=executable_name,
        launch=launch,
        icons=build_icon_manifest(request.app_dir, overrides.icon, icon_asset_root),
        associations=build_association_options(overrides.mime_types),
    )


__all__ = [
    "ASSOCIATION_EXTENSION",
    "AssociationOptions",
    "BundleDescriptor",
    "DEFAULT_CATEGORY",
    "DEFAULT_ICON_SIZES",
    "DESKTOP_ENTRY_HEADER",
    "FileAssociation",
    "IconEntry",
    "LaunchDescriptor",
    "VERSION_KEY",
    "build_association_options",
    "build_icon_manifest",
    "reconcile",
    "resolve_executable_name",
]
