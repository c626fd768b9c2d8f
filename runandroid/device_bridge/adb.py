"""
Device bridge - adb client for listing devices and launching activities.
"""

import os
import subprocess
from pathlib import Path
from typing import List, Optional

from runandroid.build_adapters.interface import ManifestInfo
from runandroid.utils.logger import get_logger
from runandroid.utils.process import ProcessRunner

logger = get_logger(__name__)

DEVICES_TIMEOUT = 10


def parse_devices_output(output: str) -> List[str]:
    """
    Parse `adb devices` output into the serials of ready devices.

    Devices reported as 'offline' or 'unauthorized' are skipped.
    """
    serials: List[str] = []
    for line in output.strip().splitlines():
        line = line.strip()
        if not line or line.startswith('List of devices') or line.startswith('*'):
            continue
        parts = line.split()
        if len(parts) >= 2 and parts[1] == 'device':
            serials.append(parts[0])
    return serials


class AdbClient:
    """
    Wrapper around the adb binary.

    The binary comes from $ANDROID_HOME/platform-tools when ANDROID_HOME is
    set, otherwise from PATH.
    """

    def __init__(
        self,
        android_home: Optional[str] = None,
        runner: Optional[ProcessRunner] = None
    ):
        if android_home is None:
            android_home = os.environ.get('ANDROID_HOME')
        self.android_home = android_home
        self.runner = runner or ProcessRunner()
        self.logger = get_logger(__name__)

    @property
    def adb_path(self) -> str:
        if self.android_home:
            return str(Path(self.android_home) / 'platform-tools' / 'adb')
        return 'adb'

    def get_devices(self) -> List[str]:
        """Return the serials of attached devices; empty if adb cannot be queried."""
        try:
            result = self.runner.run(
                [self.adb_path, 'devices'],
                capture_output=True,
                timeout=DEVICES_TIMEOUT
            )
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.debug(f"adb devices failed: {e}")
            return []
        return parse_devices_output(result.stdout or '')

    def start_activity(self, manifest: ManifestInfo, device: Optional[str] = None) -> None:
        """
        Launch the app's activity, on one device or on whatever adb picks.

        Raises:
            subprocess.CalledProcessError: If adb exits with an error.
            OSError: If adb cannot be executed.
        """
        args = ['shell', 'am', 'start', '-n', manifest.component]
        if device:
            args = ['-s', device, *args]
            self.logger.info(f"Starting the app on {device} ({self.adb_path} {' '.join(args)})...")
        else:
            self.logger.info(f"Starting the app ({self.adb_path} {' '.join(args)})...")

        self.runner.run([self.adb_path, *args])

    def start_on_all_devices(self, manifest: ManifestInfo) -> List[str]:
        """
        Launch on every attached device.

        With no devices listed, falls back to a plain `adb shell am start`.
        Returns the serials the app was started on.
        """
        devices = self.get_devices()
        if not devices:
            self.start_activity(manifest)
            return []

        for device in devices:
            self.start_activity(manifest, device)
        return devices
