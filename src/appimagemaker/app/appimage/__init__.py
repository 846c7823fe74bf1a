"""AppImage build orchestration."""

from .service import (
    AppImageMakerService,
    BuildPlan,
    MakerAppImage,
    artifact_file_name,
    stage_dir_for,
)

__all__ = [
    "AppImageMakerService",
    "BuildPlan",
    "MakerAppImage",
    "artifact_file_name",
    "stage_dir_for",
]
