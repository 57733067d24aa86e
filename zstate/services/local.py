"""Command runner for the local host."""
import subprocess

from zstate.core.executor import RunResult


class LocalRunner:
    """Runs command lines through the local shell."""

    def run(self, command: str, timeout: float) -> RunResult:
        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return RunResult(completed=False)
        except OSError as e:
            return RunResult(completed=False, error=e)

        return RunResult(stdout=result.stdout, stderr=result.stderr)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False
