#!/usr/bin/env python3
"""Entry point for the appimage-maker CLI."""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from collections import deque
from pathlib import Path
from textwrap import dedent

from appimagemaker import __version__
from appimagemaker.adapters.forge_config import ForgeConfig, load_forge_config, load_package_metadata
from appimagemaker.app.appimage import AppImageMakerService, MakerAppImage
from appimagemaker.domain.errors import BackendInvocationError, ConfigurationError, MakerError
from appimagemaker.domain.request import BundleRequest
from appimagemaker.settings import SETTINGS, RuntimeSettings
from appimagemaker.utils.telemetry import clear as telemetry_clear
from appimagemaker.utils.telemetry import iter_events as telemetry_iter
from appimagemaker.utils.telemetry import summarize as telemetry_summarize

CONFIG_CANDIDATES = ("forge.config.yaml", "forge.config.yml", "forge.config.json")

HELP_OVERVIEW = dedent(
    """
    Package an already built application directory into a single .AppImage.

    Typical layout:
      project/package.json
      project/forge.config.yaml
      project/out/<name>-linux-x64/      <- APP_DIR

    Examples:
      appimage-maker make out/demo-linux-x64 --out out/make --arch x64
      appimage-maker plan out/demo-linux-x64 --out out/make --arch x64
    """
)


def _project_root(app_dir: Path) -> Path:
    return app_dir.parent.parent


def _resolve_config_path(explicit: str | None, app_dir: Path) -> Path | None:
    if explicit:
        return Path(explicit).expanduser().resolve()
    for root in (_project_root(app_dir), Path.cwd()):
        for name in CONFIG_CANDIDATES:
            candidate = root / name
            if candidate.exists():
                return candidate
    return None


def _resolve_package_path(explicit: str | None, app_dir: Path) -> Path:
    if explicit:
        return Path(explicit).expanduser().resolve()
    candidate = _project_root(app_dir) / "package.json"
    if candidate.exists():
        return candidate
    return Path.cwd() / "package.json"


def _runtime_settings(args: argparse.Namespace) -> RuntimeSettings:
    changes: dict[str, object] = {}
    if getattr(args, "icon_root", None):
        changes["icon_asset_root"] = Path(args.icon_root).expanduser()
    if getattr(args, "app_builder", None):
        changes["app_builder"] = args.app_builder
    return dataclasses.replace(SETTINGS, **changes) if changes else SETTINGS


def _build_service(settings: RuntimeSettings) -> AppImageMakerService:
    return AppImageMakerService(settings)


def _build_request(args: argparse.Namespace) -> BundleRequest:
    app_dir = Path(args.app_dir).expanduser().resolve()
    config_path = _resolve_config_path(getattr(args, "config", None), app_dir)
    forge_config = load_forge_config(config_path) if config_path else ForgeConfig()
    package = load_package_metadata(_resolve_package_path(getattr(args, "package", None), app_dir))
    app_name = args.name or package.product_name or package.name
    if not app_name:
        raise ConfigurationError("Application name missing: pass --name or set productName/name in package.json")
    return BundleRequest(
        app_dir=app_dir,
        app_name=app_name,
        make_dir=Path(args.out).expanduser().resolve(),
        arch=args.arch,
        platform=args.platform,
        package=package,
        executable_name=forge_config.executable_name,
        makers=forge_config.makers,
    )


def _report_failure(command: str, exc: MakerError) -> None:
    print(f"{command} failed: {exc}", file=sys.stderr)
    if isinstance(exc, BackendInvocationError) and exc.stderr:
        print("backend stderr:", file=sys.stderr)
        print(exc.stderr, end="" if exc.stderr.endswith("\n") else "\n", file=sys.stderr)


def _make_cmd(args: argparse.Namespace) -> int:
    if not MakerAppImage.is_supported_on_current_platform():
        print(f"make failed: AppImage builds are not supported on {sys.platform}", file=sys.stderr)
        return 2
    if args.platform not in MakerAppImage.default_platforms:
        print(f"make failed: unsupported target platform '{args.platform}'", file=sys.stderr)
        return 2

    settings = _runtime_settings(args)
    try:
        request = _build_request(args)
        artifacts = _build_service(settings).make(request)
    except MakerError as exc:
        _report_failure("make", exc)
        return 1

    if getattr(args, "json", False):
        print(json.dumps({"artifacts": [str(path) for path in artifacts]}, ensure_ascii=False, indent=2))
    else:
        for path in artifacts:
            print(f"make: {path}")
    return 0


def _plan_cmd(args: argparse.Namespace) -> int:
    settings = _runtime_settings(args)
    try:
        request = _build_request(args)
        plan = _build_service(settings).plan(request)
    except MakerError as exc:
        _report_failure("plan", exc)
        return 1
    payload = plan.to_dict()
    payload["backend"] = settings.app_builder
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        recent = getattr(args, "recent", 0)
        if recent and recent > 0:
            events = list(deque(telemetry_iter(SETTINGS), maxlen=recent))
        else:
            events = list(telemetry_iter(SETTINGS))
        print(json.dumps(telemetry_summarize(events), indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        telemetry_clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    if args.telemetry_command == "tail":
        for evt in deque(telemetry_iter(SETTINGS), maxlen=args.limit):
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def _add_build_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("app_dir", help="Packaged application directory (e.g. out/demo-linux-x64)")
    parser.add_argument("--out", required=True, help="Output directory for the AppImage")
    parser.add_argument("--arch", required=True, help="Target architecture (x64, arm64, ...)")
    parser.add_argument("--platform", default="linux", help="Target platform (default: linux)")
    parser.add_argument("--name", help="Application name (default: productName or name from package.json)")
    parser.add_argument("--config", help="Maker configuration file (default: forge.config.yaml next to package.json)")
    parser.add_argument("--package", help="package.json to read version/description from")
    parser.add_argument("--icon-root", dest="icon_root", help="Directory holding the default NxN.png icons")
    parser.add_argument("--app-builder", dest="app_builder", help="Backend executable (default: app-builder)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appimage-maker",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"appimage-maker {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    make_cmd = sub.add_parser("make", help="Build the AppImage")
    _add_build_arguments(make_cmd)
    make_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    make_cmd.set_defaults(func=_make_cmd)

    plan_cmd = sub.add_parser("plan", help="Print the backend invocation without building")
    _add_build_arguments(plan_cmd)
    plan_cmd.set_defaults(func=_plan_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local telemetry logs")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)

    telemetry_report = telemetry_sub.add_parser("report", help="Print aggregated telemetry stats")
    telemetry_report.add_argument(
        "--recent",
        type=int,
        default=0,
        help="Limit aggregation to the last N telemetry events",
    )
    telemetry_report.set_defaults(func=_telemetry_cmd)

    telemetry_clear_cmd = telemetry_sub.add_parser("clear", help="Remove telemetry log file")
    telemetry_clear_cmd.set_defaults(func=_telemetry_cmd)

    telemetry_tail = telemetry_sub.add_parser("tail", help="Print last N telemetry events")
    telemetry_tail.add_argument("--limit", type=int, default=20)
    telemetry_tail.set_defaults(func=_telemetry_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
