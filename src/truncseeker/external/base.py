"""Base class for external tool execution."""

from __future__ import annotations

import logging
import re
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from packaging import version

from truncseeker.exceptions import DependencyError, ExternalToolError
from truncseeker.utils.logging import get_logger


class ExternalTool:
    """Base class for external tool wrappers.

    ``command`` is the argv prefix used to invoke the tool. It defaults to the
    bare executable name but may carry a launcher, e.g.
    ``["conda", "run", "-n", "qiime2-2025.10", "qiime"]``.
    """

    tool_name: str = ""
    required_version: Optional[str] = None
    version_args: Sequence[str] = ("--version",)
    version_regex: str = r"(\d+\.\d+(?:\.\d+)*)"

    # None = no timeout; denoising large runs can take many hours
    DEFAULT_TIMEOUT: Optional[int] = None

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        threads: int = 1,
        command: Optional[Sequence[str]] = None,
    ):
        self.threads = threads
        self.command = list(command) if command else [self.tool_name]
        self.logger = logger or get_logger(f"external.{self.tool_name}")
        self._check_installation()

    @property
    def executable(self) -> str:
        return self.command[0]

    def _check_installation(self) -> None:
        """Check the executable is on PATH and new enough."""
        if shutil.which(self.executable) is None:
            raise DependencyError(
                f"{self.executable} not found in PATH. "
                f"Please install {self.tool_name} (e.g. conda install -c bioconda {self.tool_name})"
            )

        if self.required_version:
            current_version = self.get_tool_version()
            if current_version and not self.check_minimum_version(current_version, self.required_version):
                raise DependencyError(
                    f"{self.tool_name} version {current_version} is below "
                    f"required version {self.required_version}"
                )
            self.logger.debug(f"{self.tool_name} version: {current_version}")

    def get_tool_version(self) -> Optional[str]:
        cmd = self.command + list(self.version_args)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False, timeout=30)
        except (subprocess.TimeoutExpired, OSError) as e:
            self.logger.debug(f"Could not get version for {self.tool_name}: {e}")
            return None
        match = re.search(self.version_regex, result.stdout + result.stderr)
        return match.group(1) if match else None

    def check_minimum_version(self, current_version: str, required_version: str) -> bool:
        """Compare versions; unparseable strings are allowed with a warning."""
        try:
            current_ver = version.parse(current_version)
            required_ver = version.parse(required_version)
        except version.InvalidVersion:
            self.logger.warning(
                f"Could not compare {self.tool_name} version '{current_version}' with "
                f"'{required_version}'; please verify the tool version manually."
            )
            return True
        return current_ver >= required_ver

    @staticmethod
    def split_args(extra: Optional[str | Sequence[str]]) -> list[str]:
        """Turn a configured ``additional_args`` value into argv items."""
        if not extra:
            return []
        if isinstance(extra, str):
            return shlex.split(extra)
        return [str(a) for a in extra]

    def run(
        self,
        cmd: Sequence[str],
        cwd: Optional[Path] = None,
        check: bool = True,
        capture_output: bool = True,
        timeout: Optional[int] = None,
    ) -> tuple[str, str]:
        """Execute ``cmd`` and return ``(stdout, stderr)``.

        Raises:
            ExternalToolError: non-zero exit, timeout, or the process could
                not be started.
        """
        effective_timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        cmd = [str(c) for c in cmd]
        cmd_str = " ".join(cmd)
        self.logger.info(f"Running: {cmd_str}")

        try:
            result = subprocess.run(
                cmd, cwd=cwd, capture_output=capture_output, text=True, check=check, timeout=effective_timeout
            )
        except subprocess.TimeoutExpired:
            self.logger.error(f"Command timed out after {effective_timeout}s: {cmd_str}")
            raise ExternalToolError(
                f"{self.tool_name} timed out",
                command=cmd,
                returncode=-1,
                stderr=f"Process timed out after {effective_timeout} seconds",
            )
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Command failed (exit {e.returncode}): {cmd_str}")
            self.logger.error(f"Error: {e.stderr[-1000:] if e.stderr else 'No error output'}")
            raise ExternalToolError(
                f"{self.tool_name} failed with exit code {e.returncode}",
                command=cmd,
                returncode=e.returncode,
                stderr=e.stderr,
            )
        except OSError as e:
            self.logger.error(f"OS error running command: {cmd_str}: {e}")
            raise ExternalToolError(
                f"Failed to execute {self.tool_name}", command=cmd, returncode=-1, stderr=str(e)
            )

        if result.stderr and not result.returncode:
            self.logger.debug(f"Command stderr: {result.stderr[:500]}")
        if capture_output:
            return result.stdout, result.stderr
        return "", ""
