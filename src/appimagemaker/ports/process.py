"""Port definitions for running external processes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(frozen=True)
class ProcessResult:
    args: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner(ABC):
    @abstractmethod
    def run(self, args: Sequence[str]) -> ProcessResult:
        """Run a process to completion and capture its output.

        Raises OSError when the executable cannot be spawned.
        """
