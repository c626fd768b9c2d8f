"""
Process execution for external tools (gradlew, adb, the packager script).

All commands receive their working directory explicitly; nothing here
changes the current directory of the running process.
"""

import subprocess
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Union

from runandroid.utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


class ProcessRunner:
    """Thin wrapper around subprocess so callers can substitute a fake."""

    def run(
        self,
        cmd: Sequence[str],
        cwd: Optional[PathLike] = None,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        check: bool = True
    ) -> subprocess.CompletedProcess:
        """
        Run a command to completion.

        Without capture_output the child shares this process's stdin,
        stdout and stderr, so build output streams straight to the user.

        Raises:
            subprocess.CalledProcessError: If check is set and the command fails.
            OSError: If the executable cannot be started.
        """
        args: List[str] = [str(c) for c in cmd]
        logger.debug(f"Running {' '.join(args)} (cwd={cwd or '.'})")
        return subprocess.run(
            args,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=capture_output,
            text=True,
            timeout=timeout,
            check=check
        )

    def spawn(
        self,
        cmd: Sequence[str],
        cwd: Optional[PathLike] = None,
        detached: bool = False,
        quiet: bool = False
    ) -> subprocess.Popen:
        """
        Start a command without waiting for it.

        Args:
            cmd: Command and arguments.
            cwd: Working directory for the child.
            detached: Let the child outlive this process.
            quiet: Discard the child's standard streams.
        """
        args: List[str] = [str(c) for c in cmd]
        logger.debug(f"Spawning {' '.join(args)} (cwd={cwd or '.'}, detached={detached})")

        kwargs = {}
        if detached:
            if sys.platform.startswith('win'):
                kwargs['creationflags'] = (
                    subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
                )
            else:
                kwargs['start_new_session'] = True
        if quiet:
            kwargs['stdin'] = subprocess.DEVNULL
            kwargs['stdout'] = subprocess.DEVNULL
            kwargs['stderr'] = subprocess.DEVNULL

        return subprocess.Popen(
            args,
            cwd=str(cwd) if cwd is not None else None,
            **kwargs
        )
