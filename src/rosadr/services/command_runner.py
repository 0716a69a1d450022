"""Subprocess execution service for rosadr."""

import os
import subprocess
from typing import Dict, List, Optional

from rosadr.errors import ExecutionError
from rosadr.errors_catalog import actionable_error


class CommandRunner:
    """Runs external commands with consistent logging and error handling.

    Commands are never retried and never time out; a hung tool hangs the run.
    """

    def __init__(self, logger, shell: str = "bash", env: Optional[Dict[str, str]] = None):
        self.logger = logger
        self.shell = shell
        self.env = dict(env or {})

    def run(self, cmd: List[str], check: bool = True) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.info("Executing: %s", cmd_str)

        child_env = None
        if self.env:
            child_env = os.environ.copy()
            child_env.update(self.env)

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=True,
                env=child_env,
            )
        except FileNotFoundError as exc:
            raise ExecutionError(
                cmd, 127, actionable_error("command_not_found", program=cmd[0])
            ) from exc
        except OSError as exc:
            raise ExecutionError(cmd, None, f"Failed to execute command: {exc}") from exc

        if result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        error = ExecutionError(cmd, result.returncode, result.stderr or "")
        if check:
            raise error

        self.logger.warning(str(error))
        return result

    def run_shell(self, script: str, check: bool = True) -> subprocess.CompletedProcess:
        """Runs a rendered query template through the shell interpreter."""
        return self.run([self.shell, "-c", script], check=check)
