"""ProcessRunner backed by the subprocess module."""

from __future__ import annotations

import subprocess
from typing import Sequence

from appimagemaker.ports.process import ProcessResult, ProcessRunner


class SubprocessRunner(ProcessRunner):
    def run(self, args: Sequence[str]) -> ProcessResult:
        argv = [str(arg) for arg in args]
        completed = subprocess.run(argv, capture_output=True, text=True)
        return ProcessResult(
            args=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
