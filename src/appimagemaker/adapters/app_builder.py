"""Invocation of the external app-builder backend."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Sequence

from appimagemaker.domain.errors import BackendInvocationError
from appimagemaker.ports.process import ProcessRunner


@dataclass
class AppBuilderBackend:
    """Runs app-builder and decodes the JSON it prints on stdout."""

    executable: str
    runner: ProcessRunner

    def command(self, args: Sequence[str]) -> list[str]:
        return [self.executable, *args]

    def execute_as_json(self, args: Sequence[str]) -> Any:
        command = self.command(args)
        try:
            result = self.runner.run(command)
        except OSError as exc:
            raise BackendInvocationError(
                f"Backend executable could not be started: {self.executable} ({exc})"
            ) from exc
        if not result.ok:
            raise BackendInvocationError(
                f"Backend exited with code {result.returncode}: {result.stderr.strip() or '<no stderr>'}",
                returncode=result.returncode,
                stderr=result.stderr,
                stdout=result.stdout,
            )
        raw = result.stdout.strip()
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BackendInvocationError(
                f'Cannot parse result: {exc}: "{raw}"',
                returncode=result.returncode,
                stderr=result.stderr,
                stdout=result.stdout,
            ) from exc


__all__ = ["AppBuilderBackend"]
