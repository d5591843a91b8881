from dataclasses import dataclass, field
from pathlib import Path
import shlex
import shutil
import subprocess
from typing import Any, Sequence

from loguru import logger


@dataclass
class TimoniError(Exception):
    """
    Raised when a `timoni` command did not complete successfully. The *statuscode* is `None` if the process could not
    be started or had to be killed.
    """

    statuscode: int | None
    command: list[str] = field(default_factory=list)
    reason: str | None = None

    def __str__(self) -> str:
        if self.statuscode is None:
            message = "Timoni command failed"
        else:
            message = f"Timoni command failed with status code {self.statuscode}"
        if self.reason:
            message += f": {self.reason}"
        if self.command:
            message += f" ($ {' '.join(map(shlex.quote, self.command))})"
        return message


class Timoni:
    """
    Wrapper for interfacing with the `timoni` CLI. The output of the commands is not captured, it is passed through
    to the standard output and error streams of the current process.

    Args:
        binary: The name or path of the `timoni` executable.
        extra_args: Additional arguments to append to every `bundle apply` invocation.
        timeout: Number of seconds after which a command is killed. `None` waits indefinitely.
    """

    def __init__(self, binary: str = "timoni", extra_args: Sequence[str] = (), timeout: float | None = None) -> None:
        self.binary = binary
        self.extra_args = list(extra_args)
        self.timeout = timeout

    def is_available(self) -> bool:
        """
        Check if the `timoni` executable can be found.
        """

        return shutil.which(self.binary) is not None

    def bundle_apply_command(self, files: Sequence[Path]) -> list[str]:
        """
        Build the command line for `timoni bundle apply` with one `-f` option per file, in the given order.
        """

        command = [self.binary, "bundle", "apply"]
        for file in files:
            command.extend(["-f", str(file)])
        command.extend(self.extra_args)
        return command

    def bundle_apply(self, files: Sequence[Path]) -> None:
        """
        Apply the bundle made up of the given CUE files to the cluster.

        Raises:
            TimoniError: If the command could not be started, timed out or exited with a non-zero status.
        """

        command = self.bundle_apply_command(files)
        logger.debug("Applying bundle with command: $ {command}", command=" ".join(map(shlex.quote, command)))
        self._run(command)

    def _run(self, command: list[str]) -> None:
        kwargs: dict[str, Any] = {}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        try:
            status = subprocess.run(command, **kwargs)
        except subprocess.TimeoutExpired as exc:
            raise TimoniError(None, command, f"timed out after {self.timeout} seconds") from exc
        except OSError as exc:
            raise TimoniError(None, command, f"could not be started ({exc})") from exc

        if status.returncode:
            raise TimoniError(status.returncode, command)
