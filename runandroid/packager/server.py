"""
Packager control - status check and launch of the React Native JS server.

The packager answers GET /status with 'packager-status:running'. Anything
else listening on the port is reported as unrecognized.
"""

import os
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import requests

from runandroid.utils.logger import get_logger
from runandroid.utils.process import ProcessRunner

logger = get_logger(__name__)

DEFAULT_PORT = 8081
STATUS_TIMEOUT = 2
RUNNING_BODY = 'packager-status:running'


class PackagerStatus(Enum):
    RUNNING = 'running'
    UNRECOGNIZED = 'unrecognized'
    NOT_RUNNING = 'not_running'


def default_port() -> int:
    """Port from RCT_METRO_PORT, falling back to 8081."""
    value = os.environ.get('RCT_METRO_PORT', '')
    try:
        return int(value) if value else DEFAULT_PORT
    except ValueError:
        logger.warning(f"Ignoring invalid RCT_METRO_PORT={value!r}, using {DEFAULT_PORT}")
        return DEFAULT_PORT


def status_url(port: int = DEFAULT_PORT) -> str:
    return f"http://localhost:{port}/status"


def get_packager_status(
    port: int = DEFAULT_PORT,
    session: Optional[requests.Session] = None
) -> PackagerStatus:
    """Ask the server on `port` whether it is the packager."""
    http = session or requests
    try:
        response = http.get(status_url(port), timeout=STATUS_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.debug(f"Packager status check failed: {e}")
        return PackagerStatus.NOT_RUNNING

    if response.text == RUNNING_BODY:
        return PackagerStatus.RUNNING
    return PackagerStatus.UNRECOGNIZED


def launch_script_name(platform: str = sys.platform) -> str:
    return 'launchPackager.bat' if platform.startswith('win') else 'launchPackager.command'


def start_server_in_new_window(
    packager_dir: Union[str, Path],
    open_with: Optional[str] = None,
    runner: Optional[ProcessRunner] = None,
    platform: str = sys.platform
):
    """
    Launch the packager script in its own terminal window.

    Args:
        packager_dir: Directory holding launchPackager.command / .bat.
        open_with: Terminal application to use instead of the default.
        runner: Process runner, replaceable in tests.
        platform: sys.platform value to dispatch on.

    Returns:
        The completed or spawned process, or None on unsupported platforms.
    """
    runner = runner or ProcessRunner()
    packager_dir = Path(packager_dir)
    script = str(packager_dir / launch_script_name(platform))

    if platform == 'darwin':
        if open_with:
            return runner.run(['open', '-a', open_with, script], cwd=packager_dir, check=False)
        return runner.run(['open', script], cwd=packager_dir, check=False)

    if platform.startswith('linux'):
        if open_with:
            return runner.spawn([open_with, '-e', 'sh', script], cwd=packager_dir, detached=True)
        return runner.spawn(['sh', script], cwd=packager_dir, detached=True)

    if platform.startswith('win'):
        return runner.spawn(
            ['cmd.exe', '/C', 'start', script], cwd=packager_dir, detached=True, quiet=True
        )

    logger.error(f"Cannot start the packager. Unknown platform {platform}")
    return None
