"""Error taxonomy shared by every TaskGoblin module.

A user aborting an interactive step (e.g. pressing Esc during region capture)
is *not* an error; it is represented as an empty result.
"""

from __future__ import annotations


class TaskGoblinError(Exception):
    """Base class for all TaskGoblin errors."""


class InvalidArgument(TaskGoblinError, ValueError):
    """A caller passed a value outside the accepted range (e.g. a zero delay)."""


class Unsupported(TaskGoblinError, NotImplementedError):
    """The current platform lacks the requested capability."""


class ExternalProcessFailure(TaskGoblinError, RuntimeError):
    """An external command could not be spawned or exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        *,
        command: str = "",
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
