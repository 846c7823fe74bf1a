"""Domain model for AppImage bundle descriptors."""

from .descriptor import (
    AssociationOptions,
    BundleDescriptor,
    DEFAULT_ICON_SIZES,
    FileAssociation,
    IconEntry,
    LaunchDescriptor,
    build_association_options,
    build_icon_manifest,
    reconcile,
    resolve_executable_name,
)
from .errors import (
    BackendInvocationError,
    ConfigurationError,
    MakerError,
    PermissionAdjustmentError,
    StagingError,
)
from .request import (
    MAKER_PACKAGE_NAME,
    BundleRequest,
    MakerInstance,
    MakerOverrides,
    PackageMetadata,
    ResolvableMaker,
    find_maker_overrides,
)

__all__ = [
    "AssociationOptions",
    "BackendInvocationError",
    "BundleDescriptor",
    "BundleRequest",
    "ConfigurationError",
    "DEFAULT_ICON_SIZES",
    "FileAssociation",
    "IconEntry",
    "LaunchDescriptor",
    "MAKER_PACKAGE_NAME",
    "MakerError",
    "MakerInstance",
    "MakerOverrides",
    "PackageMetadata",
    "PermissionAdjustmentError",
    "ResolvableMaker",
    "StagingError",
    "build_association_options",
    "build_icon_manifest",
    "find_maker_overrides",
    "reconcile",
    "resolve_executable_name",
]
