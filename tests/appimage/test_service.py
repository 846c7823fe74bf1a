from __future__ import annotations

import json
from pathlib import Path
from typing import List, Tuple

import pytest

from appimagemaker.app.appimage import AppImageMakerService, MakerAppImage
from appimagemaker.domain import (
    BackendInvocationError,
    BundleRequest,
    PackageMetadata,
    PermissionAdjustmentError,
    ResolvableMaker,
    StagingError,
)
from appimagemaker.ports.process import ProcessResult
from appimagemaker.settings import RuntimeSettings
from appimagemaker.utils.telemetry import iter_events

from .fakes import FakeRunner


def make_request(app_dir: Path, make_dir: Path, *, config: dict | None = None) -> BundleRequest:
    makers: Tuple[ResolvableMaker, ...] = ()
    if config is not None:
        makers = (ResolvableMaker(name="appimagemaker", config=config),)
    return BundleRequest(
        app_dir=app_dir,
        app_name="Demo",
        make_dir=make_dir,
        arch="x64",
        package=PackageMetadata(name="demo", version="2.0.6", description="Demo application"),
        makers=makers,
    )


def backend_configuration(call: Tuple[str, ...]) -> dict:
    return json.loads(call[call.index("--configuration") + 1])


def test_make_default_build(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    runner = FakeRunner()
    service = AppImageMakerService(runtime_settings, runner)
    make_dir = tmp_path / "project" / "out" / "make"

    artifacts = service.make(make_request(app_dir, make_dir))

    expected = make_dir / "Demo-2.0.6-x64.AppImage"
    assert artifacts == [expected]
    assert runner.executables() == ["app-builder"]
    call = runner.calls[0]
    assert call[1:11] == (
        "appimage",
        "--stage",
        str(make_dir / "__appImage-x64"),
        "--arch",
        "x64",
        "--output",
        str(expected),
        "--app",
        str(app_dir),
        "--configuration",
    )
    assert len(call) == 12
    configuration = backend_configuration(call)
    assert [icon["size"] for icon in configuration["icons"]] == [16, 32, 48, 64, 128, 256]
    assert configuration["icons"][0]["file"] == str(runtime_settings.icon_asset_root / "16x16.png")
    assert "Name=Demo\n" in configuration["desktopEntry"]
    assert "Terminal=false\n" in configuration["desktopEntry"]
    assert configuration["fileAssociations"] == []
    assert "mimeTypes" not in configuration
    assert (make_dir / "__appImage-x64").is_dir()


def test_make_adjusts_sandbox_before_backend(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    runner = FakeRunner()
    service = AppImageMakerService(runtime_settings, runner)

    service.make(make_request(app_dir, tmp_path / "make", config={"chmodChromeSandbox": "4755"}))

    assert runner.calls[0] == ("chmod", "4755", str(app_dir / "chrome-sandbox"))
    assert runner.executables() == ["chmod", "app-builder"]


def test_failed_chmod_aborts_before_backend(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    runner = FakeRunner(
        {
            "chmod": ProcessResult(
                args=("chmod",),
                returncode=1,
                stderr="chmod: changing permissions: Operation not permitted\n",
            )
        }
    )
    service = AppImageMakerService(runtime_settings, runner)

    with pytest.raises(PermissionAdjustmentError) as excinfo:
        service.make(make_request(app_dir, tmp_path / "make", config={"chmodChromeSandbox": "4755"}))

    assert excinfo.value.returncode == 1
    assert "Operation not permitted" in excinfo.value.stderr
    assert runner.executables() == ["chmod"]


def test_unspawnable_chmod_is_a_permission_error(
    runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path
) -> None:
    runner = FakeRunner({"chmod": FileNotFoundError(2, "No such file or directory", "chmod")})
    service = AppImageMakerService(runtime_settings, runner)

    with pytest.raises(PermissionAdjustmentError):
        service.make(make_request(app_dir, tmp_path / "make", config={"chmodChromeSandbox": "4755"}))
    assert runner.executables() == ["chmod"]


def test_template_is_final_argument_pair(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    runner = FakeRunner()
    service = AppImageMakerService(runtime_settings, runner)

    service.make(make_request(app_dir, tmp_path / "make", config={"template": "/custom/AppRun"}))

    assert runner.calls[-1][-2:] == ("--template", "/custom/AppRun")


def test_mime_types_and_icon_override_reach_backend(
    runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path
) -> None:
    runner = FakeRunner()
    service = AppImageMakerService(runtime_settings, runner)
    config = {"options": {"icon": "assets/icon.png", "mimeType": ["a/x", "b/y", "c/z"]}}

    service.make(make_request(app_dir, tmp_path / "make", config=config))

    configuration = backend_configuration(runner.calls[-1])
    assert configuration["icons"] == [{"file": str(tmp_path / "project" / "assets" / "icon.png"), "size": 0}]
    assert configuration["fileAssociations"] == [{"ext": "AppImage", "mimeType": "a/x"}]
    assert configuration["mimeTypes"] == ["b/y", "c/z"]


def test_stale_stage_directory_is_recreated(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    make_dir = tmp_path / "make"
    stage = make_dir / "__appImage-x64"
    (stage / "nested").mkdir(parents=True)
    (stage / "stale.txt").write_text("old", encoding="utf-8")
    (stage / "nested" / "leftover.bin").write_text("old", encoding="utf-8")
    seen: List[List[str]] = []

    def backend(argv: Tuple[str, ...]) -> ProcessResult:
        seen.append(sorted(path.name for path in stage.iterdir()))
        return ProcessResult(args=argv, returncode=0, stdout="")

    service = AppImageMakerService(runtime_settings, FakeRunner({"app-builder": backend}))
    service.make(make_request(app_dir, make_dir))

    assert seen == [[]]
    assert stage.is_dir()


def test_backend_failure_surfaces_stderr(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    runner = FakeRunner(
        {"app-builder": ProcessResult(args=("app-builder",), returncode=2, stderr="cannot find mksquashfs\n")}
    )
    service = AppImageMakerService(runtime_settings, runner)
    request = make_request(app_dir, tmp_path / "make")

    with pytest.raises(BackendInvocationError) as excinfo:
        service.make(request)

    assert excinfo.value.stderr == "cannot find mksquashfs\n"
    assert excinfo.value.returncode == 2
    assert service.plan(request).artifact_path == tmp_path / "make" / "Demo-2.0.6-x64.AppImage"


def test_staging_failure_stops_the_build(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    runner = FakeRunner()
    service = AppImageMakerService(runtime_settings, runner)

    with pytest.raises(StagingError):
        service.make(make_request(app_dir, blocker / "make", config={"chmodChromeSandbox": "4755"}))
    assert runner.calls == []


@pytest.mark.parametrize("kind", ["symlink", "file"])
def test_unremovable_stale_stage_stops_the_build(
    kind: str, runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path
) -> None:
    make_dir = tmp_path / "make"
    make_dir.mkdir()
    stage = make_dir / "__appImage-x64"
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    (elsewhere / "keep.txt").write_text("keep", encoding="utf-8")
    if kind == "symlink":
        stage.symlink_to(elsewhere, target_is_directory=True)
    else:
        stage.write_text("not a directory", encoding="utf-8")
    runner = FakeRunner()
    service = AppImageMakerService(runtime_settings, runner)

    with pytest.raises(StagingError):
        service.make(make_request(app_dir, make_dir, config={"chmodChromeSandbox": "4755"}))
    assert runner.calls == []
    assert (elsewhere / "keep.txt").read_text(encoding="utf-8") == "keep"


def test_relative_app_dir_is_made_absolute(
    runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    service = AppImageMakerService(runtime_settings, FakeRunner())
    plan = service.plan(
        make_request(
            Path("project/out/Demo-linux-x64"),
            Path("make"),
            config={"options": {"icon": "assets/icon.png"}, "chmodChromeSandbox": "4755"},
        )
    )

    expected = Path.cwd() / "project" / "out" / "Demo-linux-x64"
    assert plan.app_dir == expected
    assert plan.arguments[plan.arguments.index("--app") + 1] == str(expected)
    assert plan.chmod_command() == ["chmod", "4755", str(expected / "chrome-sandbox")]
    assert backend_configuration(plan.arguments)["icons"] == [
        {"file": str(Path.cwd() / "project" / "assets" / "icon.png"), "size": 0}
    ]


def test_make_records_telemetry(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    service = AppImageMakerService(runtime_settings, FakeRunner())
    service.make(make_request(app_dir, tmp_path / "make"))

    failing = AppImageMakerService(
        runtime_settings,
        FakeRunner({"app-builder": ProcessResult(args=("app-builder",), returncode=1, stderr="boom")}),
    )
    with pytest.raises(BackendInvocationError):
        failing.make(make_request(app_dir, tmp_path / "make"))

    events = [evt for evt in iter_events(runtime_settings) if evt["event"] == "appimage.make"]
    assert [evt["status"] for evt in events] == ["start", "success", "start", "error"]
    assert events[1]["payload"]["artifact"].endswith("Demo-2.0.6-x64.AppImage")
    assert events[3]["level"] == "error"
    assert events[3]["payload"]["error"] == "BackendInvocationError"
    assert events[0]["correlationId"] == events[1]["correlationId"]
    assert events[2]["correlationId"] == events[3]["correlationId"]
    assert events[0]["correlationId"] != events[2]["correlationId"]


def test_plan_has_no_side_effects(runtime_settings: RuntimeSettings, app_dir: Path, tmp_path: Path) -> None:
    runner = FakeRunner()
    service = AppImageMakerService(runtime_settings, runner)
    plan = service.plan(make_request(app_dir, tmp_path / "make", config={"chmodChromeSandbox": "4755"}))

    assert runner.calls == []
    assert not (tmp_path / "make").exists()
    assert plan.chmod_command() == ["chmod", "4755", str(app_dir / "chrome-sandbox")]
    assert plan.to_dict()["artifact"] == str(tmp_path / "make" / "Demo-2.0.6-x64.AppImage")


@pytest.mark.parametrize(
    ("platform", "supported"),
    [("linux", True), ("darwin", True), ("win32", False), ("cygwin", False)],
)
def test_maker_platform_support(platform: str, supported: bool) -> None:
    assert MakerAppImage.is_supported_on_current_platform(platform) is supported
    assert MakerAppImage.default_platforms == ("linux",)
