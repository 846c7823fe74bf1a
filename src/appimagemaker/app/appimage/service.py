"""Application service staging a build directory and invoking the AppImage backend."""

from __future__ import annotations

import json
import shutil
import sys
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Tuple

from appimagemaker.adapters.app_builder import AppBuilderBackend
from appimagemaker.adapters.subprocess_runner import SubprocessRunner
from appimagemaker.domain.descriptor import BundleDescriptor, reconcile
from appimagemaker.domain.errors import MakerError, PermissionAdjustmentError, StagingError
from appimagemaker.domain.request import BundleRequest
from appimagemaker.ports.process import ProcessRunner
from appimagemaker.settings import RuntimeSettings
from appimagemaker.utils.telemetry import new_build_id, record_structured_event

BUNDLE_TYPE = "appimage"
BUNDLE_EXTENSION = "AppImage"
SANDBOX_HELPER = "chrome-sandbox"


def artifact_file_name(app_name: str, version: str, arch: str) -> str:
    return f"{app_name}-{version}-{arch}.{BUNDLE_EXTENSION}"


def stage_dir_for(make_dir: Path, arch: str) -> Path:
    return make_dir / f"__appImage-{arch}"


class MakerAppImage:
    """Static capabilities of the AppImage maker."""

    name = "AppImage"
    default_platforms: Tuple[str, ...] = ("linux",)

    @staticmethod
    def is_supported_on_current_platform(platform: str | None = None) -> bool:
        current = platform or sys.platform
        return current.startswith("linux") or current == "darwin"


@dataclass(frozen=True)
class BuildPlan:
    """Everything `make` is going to do, computed without side effects."""

    app_dir: Path
    make_dir: Path
    artifact_path: Path
    stage_dir: Path
    descriptor: BundleDescriptor
    arguments: Tuple[str, ...]
    chmod_mode: str | None = None

    @property
    def sandbox_helper(self) -> Path:
        return self.app_dir / SANDBOX_HELPER

    def chmod_command(self) -> List[str] | None:
        if self.chmod_mode is None:
            return None
        return ["chmod", self.chmod_mode, str(self.sandbox_helper)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifact": str(self.artifact_path),
            "stage": str(self.stage_dir),
            "arguments": list(self.arguments),
            "chmod": self.chmod_command(),
            "configuration": self.descriptor.to_configuration(),
        }


@dataclass
class AppImageMakerService:
    """Turns a packaged application directory into a single AppImage."""

    settings: RuntimeSettings
    runner: ProcessRunner = field(default_factory=SubprocessRunner)

    def plan(self, request: BundleRequest) -> BuildPlan:
        # icon paths and --app derive from app_dir; relative paths resolve against cwd
        request = replace(request, app_dir=request.app_dir.absolute())
        overrides = request.overrides()
        descriptor = reconcile(request, overrides, icon_asset_root=self.settings.icon_asset_root)
        make_dir = request.make_dir.absolute()
        artifact_path = make_dir / artifact_file_name(request.app_name, request.package.version, request.arch)
        stage_dir = stage_dir_for(make_dir, request.arch)

        arguments = [
            BUNDLE_TYPE,
            "--stage",
            str(stage_dir),
            "--arch",
            request.arch,
            "--output",
            str(artifact_path),
            "--app",
            str(request.app_dir),
            "--configuration",
            json.dumps(descriptor.to_configuration(), ensure_ascii=False),
        ]
        # replaces the default AppRun bootstrap script
        if overrides is not None and overrides.template:
            arguments.extend(["--template", overrides.template])

        return BuildPlan(
            app_dir=request.app_dir,
            make_dir=make_dir,
            artifact_path=artifact_path,
            stage_dir=stage_dir,
            descriptor=descriptor,
            arguments=tuple(arguments),
            chmod_mode=overrides.chmod_chrome_sandbox if overrides is not None else None,
        )

    def make(self, request: BundleRequest) -> List[Path]:
        build_id = new_build_id()
        event_context = {"app": request.app_name, "arch": request.arch, "version": request.package.version}
        record_structured_event(
            self.settings,
            "appimage.make",
            status="start",
            component="appimage",
            correlation_id=build_id,
            payload=event_context,
        )
        start = time.perf_counter()
        try:
            plan = self.plan(request)
            self._prepare_directories(plan)
            self._adjust_sandbox_permissions(plan, build_id)
            AppBuilderBackend(self.settings.app_builder, self.runner).execute_as_json(plan.arguments)
        except MakerError as exc:
            duration = (time.perf_counter() - start) * 1000
            record_structured_event(
                self.settings,
                "appimage.make",
                status="error",
                level="error",
                component="appimage",
                correlation_id=build_id,
                duration_ms=duration,
                payload=event_context | {"error": type(exc).__name__, "message": str(exc)},
            )
            raise

        duration = (time.perf_counter() - start) * 1000
        record_structured_event(
            self.settings,
            "appimage.make",
            status="success",
            component="appimage",
            correlation_id=build_id,
            duration_ms=duration,
            payload=event_context | {"artifact": str(plan.artifact_path)},
        )
        return [plan.artifact_path]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare_directories(self, plan: BuildPlan) -> None:
        try:
            plan.make_dir.mkdir(parents=True, exist_ok=True)
            # a stale stage directory must never leak into the next bundle
            if plan.stage_dir.exists():
                shutil.rmtree(plan.stage_dir)
            plan.stage_dir.mkdir(parents=True)
        except OSError as exc:
            raise StagingError(f"Cannot prepare staging directory {plan.stage_dir}: {exc}") from exc

    def _adjust_sandbox_permissions(self, plan: BuildPlan, build_id: str) -> None:
        command = plan.chmod_command()
        if command is None:
            return
        try:
            result = self.runner.run(command)
        except OSError as exc:
            raise PermissionAdjustmentError(f"Cannot run {' '.join(command)}: {exc}") from exc
        if not result.ok:
            raise PermissionAdjustmentError(
                f"{' '.join(command)} exited with code {result.returncode}: {result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        record_structured_event(
            self.settings,
            "appimage.chmod",
            status="success",
            component="appimage",
            correlation_id=build_id,
            payload={"mode": plan.chmod_mode, "path": str(plan.sandbox_helper)},
        )


__all__ = [
    "AppImageMakerService",
    "BUNDLE_EXTENSION",
    "BUNDLE_TYPE",
    "BuildPlan",
    "MakerAppImage",
    "SANDBOX_HELPER",
    "artifact_file_name",
    "stage_dir_for",
]
