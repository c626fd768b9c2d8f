"""
Orchestrator - drives a run-android invocation.

Check the project, make sure the packager is up, build and install with
Gradle, then launch the main activity on every attached device.
"""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from runandroid.build_adapters.gradle import GradleAdapter
from runandroid.build_adapters.manifest import DEFAULT_ACTIVITY_CLASS, read_manifest
from runandroid.device_bridge.adb import AdbClient
from runandroid.packager.server import (
    DEFAULT_PORT,
    PackagerStatus,
    get_packager_status,
    start_server_in_new_window,
)
from runandroid.utils.logger import get_logger
from runandroid.utils.process import ProcessRunner

logger = get_logger(__name__)

SETUP_HINT = (
    'Could not install the app on the device, read the error above for details.\n'
    'Make sure you have an Android emulator running or a device connected and have\n'
    'set up your Android development environment:\n'
    'https://facebook.github.io/react-native/docs/android-setup.html'
)


@dataclass
class RunOptions:
    """
    Settings for one run, from the command line and the environment.

    Attributes:
        root: Directory containing the android/ project directory.
        variant: Combined variant to install, e.g. 'demoRelease'.
        flavor: Deprecated alias for variant.
        install_debug: Extra argument appended to the gradlew call.
        open_with: Terminal application used to open the packager window.
        port: Packager port.
        android_home: Android SDK location, for locating adb.
        packager_dir: Directory of the packager launch scripts.
        activity_class: Simple class name of the activity to launch.
    """
    root: Path = Path('.')
    variant: Optional[str] = None
    flavor: Optional[str] = None
    install_debug: Optional[str] = None
    open_with: Optional[str] = None
    port: int = DEFAULT_PORT
    android_home: Optional[str] = None
    packager_dir: Optional[Path] = None
    activity_class: str = DEFAULT_ACTIVITY_CLASS

    def __post_init__(self):
        self.root = Path(self.root)
        if self.android_home is None:
            self.android_home = os.environ.get('ANDROID_HOME') or None
        if self.packager_dir is None:
            self.packager_dir = self.root / 'node_modules' / 'react-native' / 'packager'


class Orchestrator:
    """
    The controller for a run-android invocation.

    Responsibilities:
    - Verifying an Android project exists under the root
    - Starting the packager when nothing is serving its port
    - Building and installing through the Gradle adapter
    - Launching the app on attached devices through adb
    """

    def __init__(
        self,
        options: RunOptions,
        runner: Optional[ProcessRunner] = None,
        status_check: Callable[[int], PackagerStatus] = get_packager_status
    ):
        self.logger = get_logger(__name__)
        self.options = options
        self.runner = runner or ProcessRunner()
        self.status_check = status_check
        self.adapter = GradleAdapter(options.root, runner=self.runner)
        self.adb = AdbClient(options.android_home, runner=self.runner)

    def run(self) -> int:
        """Run the whole sequence; returns a process exit code."""
        if not self.adapter.is_android_project():
            self.logger.error(
                "Android project not found. Maybe run react-native android first?"
            )
            return 1

        self.ensure_packager()

        if not self.build():
            return 1

        return 0 if self.launch() else 1

    def ensure_packager(self) -> PackagerStatus:
        """Report the packager status and start it when it is not running."""
        status = self.status_check(self.options.port)

        if status == PackagerStatus.RUNNING:
            self.logger.info("JS server already running.")
        elif status == PackagerStatus.UNRECOGNIZED:
            self.logger.warning("JS server not recognized, continuing with build...")
        else:
            self.logger.info("Starting JS server...")
            self.start_packager()
        return status

    def start_packager(self) -> bool:
        """
        Open the packager in a new window.

        A failure here is logged and does not stop the run; the app can
        still be installed and the packager started by hand.
        """
        packager_dir = self.options.packager_dir
        if not packager_dir.is_dir():
            self.logger.error(
                f"Cannot start the packager: {packager_dir} not found. "
                "Run npm install in the project root first."
            )
            return False

        try:
            start_server_in_new_window(
                packager_dir,
                open_with=self.options.open_with,
                runner=self.runner
            )
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.error(f"Cannot start the packager: {e}")
            return False
        return True

    def build(self) -> bool:
        """Build and install with gradlew; False if the build failed."""
        try:
            self.adapter.build_and_install(
                variant=self.options.variant,
                flavor=self.options.flavor,
                install_debug=self.options.install_debug
            )
        except (subprocess.CalledProcessError, OSError) as e:
            # gradlew already streamed its own errors to the console
            self.logger.debug(f"gradlew failed: {e}")
            self.logger.error(SETUP_HINT)
            return False
        return True

    def launch(self) -> bool:
        """Start the main activity on every attached device."""
        try:
            manifest_path = self.adapter.resolve_manifest_path(self.options.variant)
            manifest = read_manifest(
                self.adapter.android_dir / manifest_path,
                self.options.activity_class
            )
            self.adb.start_on_all_devices(manifest)
        # ValueError covers MalformedConfigError and undecodable files
        except (ValueError, subprocess.CalledProcessError, OSError) as e:
            self.logger.error("adb invocation failed. Do you have adb in your PATH?")
            self.logger.error(str(e))
            return False
        return True
