"""Remote command execution with stderr classification."""
import shlex
from dataclasses import dataclass
from typing import Optional, Protocol

from zstate.core.errors import (
    DatasetNotFound,
    PoolNotFound,
    RemoteCommandError,
    TransportError,
)
from zstate.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 60.0


@dataclass
class RunResult:
    """Raw outcome of one command on the remote host."""
    stdout: str = ""
    stderr: str = ""
    completed: bool = True
    error: Optional[BaseException] = None


class Runner(Protocol):
    """Anything that can run one shell command line on the managed host."""

    def run(self, command: str, timeout: float) -> RunResult:
        ...


def quote(value) -> str:
    """Shell-escape a value before it is substituted into a command template."""
    return shlex.quote(str(value))


def strip_trailing_newline(output: str) -> str:
    if output.endswith("\n"):
        return output[:-1]
    return output


class CommandExecutor:
    """Formats commands, runs them through a Runner and classifies failures.

    Positional arguments are substituted into the template with str.format and
    are NOT escaped here. Anything derived from user input must go through
    quote() first.
    """

    def __init__(self, runner: Runner, command_prefix: str = "", timeout: float = DEFAULT_TIMEOUT):
        self.runner = runner
        self.command_prefix = command_prefix.strip()
        self.timeout = timeout

    def format(self, template: str, *args) -> str:
        command = template.format(*args) if args else template
        if self.command_prefix:
            command = f"{self.command_prefix} {command}"
        return command

    def execute(self, template: str, *args) -> str:
        """Run a command and return its stdout minus one trailing newline.

        Raises:
            DatasetNotFound: stderr mentions a missing dataset
            PoolNotFound: stderr mentions a missing pool
            RemoteCommandError: any other stderr output
            TransportError: the channel failed or the command timed out
        """
        command = self.format(template, *args)
        logger.debug(f"remote command: {command}")

        result = self.runner.run(command, self.timeout)

        if result.stderr:
            if "dataset does not exist" in result.stderr:
                raise DatasetNotFound("dataset does not exist")
            if "no such pool" in result.stderr:
                raise PoolNotFound("no such pool")
            raise RemoteCommandError(result.stderr, command=command)

        if result.error is not None:
            raise TransportError(f"failed to run '{command}': {result.error}", inner=result.error)

        if not result.completed:
            raise TransportError(f"command timed out after {self.timeout:.0f}s: {command}")

        return strip_trailing_newline(result.stdout)
