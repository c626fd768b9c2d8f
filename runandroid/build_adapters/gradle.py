"""
Gradle Build Adapter - Implementation for React Native Android projects.

The Android half of a React Native app lives in `<root>/android` and is
built with the Gradle wrapper. This adapter names the install tasks for a
variant, runs them, and works out where Gradle writes the merged manifest
for that variant.
"""

import sys
from pathlib import Path
from typing import List, Optional

from runandroid.build_adapters.interface import IBuildAdapter, MalformedConfigError
from runandroid.build_adapters.parser import (
    DEFAULT_BUILD_TYPES,
    DEFAULT_OPTIONS,
    ScanOptions,
    canonical_build_type,
    extract_variants,
    parse_bool_assignment,
    split_variant,
)
from runandroid.utils.process import ProcessRunner


class GradleAdapter(IBuildAdapter):
    """
    Build adapter for Gradle based Android projects.

    Paths returned by resolve_manifest_path() are relative to the android
    directory, which is also the working directory of every gradlew call.
    """

    ANDROID_DIR = 'android'
    BUILD_FILE = 'app/build.gradle'
    MANIFEST_BASE_DIR = 'app/build/intermediates/manifests/full'
    MANIFEST_FILE_NAME = 'AndroidManifest.xml'
    SEPARATE_BUILD_FLAG = 'enableSeparateBuildPerCPUArchitecture'
    SEPARATE_BUILD_ARCH = 'x86'

    def __init__(
        self,
        root_dir: Path,
        runner: Optional[ProcessRunner] = None,
        options: ScanOptions = DEFAULT_OPTIONS
    ):
        super().__init__(root_dir)
        self.runner = runner or ProcessRunner()
        self.options = options

    @property
    def android_dir(self) -> Path:
        return self.root_dir / self.ANDROID_DIR

    @property
    def gradlew_path(self) -> Path:
        return self.android_dir / 'gradlew'

    def is_android_project(self) -> bool:
        """A project is buildable when the Gradle wrapper script exists."""
        return self.gradlew_path.exists()

    def gradle_command(self) -> str:
        """The wrapper to invoke from inside the android directory."""
        return 'gradlew.bat' if sys.platform.startswith('win') else './gradlew'

    def install_tasks(
        self,
        variant: Optional[str] = None,
        flavor: Optional[str] = None,
        install_debug: Optional[str] = None
    ) -> List[str]:
        """
        Build the gradlew arguments that install the requested variant.

        'demoRelease' becomes 'installDemoRelease'. The deprecated flavor
        option is honoured only when no variant is given.
        """
        if variant:
            tasks = [f"install{variant[0].upper()}{variant[1:]}"]
        elif flavor:
            self.logger.warning("--flavor has been deprecated. Use --variant instead")
            tasks = [f"install{flavor[0].upper()}{flavor[1:]}"]
        else:
            tasks = ['installDebug']

        if install_debug:
            tasks.append(install_debug)
        return tasks

    def build_and_install(
        self,
        variant: Optional[str] = None,
        flavor: Optional[str] = None,
        install_debug: Optional[str] = None
    ) -> None:
        """
        Run gradlew in the android directory, streaming its output.

        Raises:
            subprocess.CalledProcessError: If the build fails.
            OSError: If gradlew cannot be executed.
        """
        cmd = self.gradle_command()
        tasks = self.install_tasks(variant, flavor, install_debug)
        self.logger.info(
            f"Building and installing the app on the device "
            f"(cd {self.ANDROID_DIR} && {cmd} {' '.join(tasks)})..."
        )
        self.runner.run([cmd, *tasks], cwd=self.android_dir)

    def is_separate_build_enabled(self, content: str) -> bool:
        """Whether per-architecture APKs are built, per the build.gradle flag."""
        try:
            return parse_bool_assignment(content, self.SEPARATE_BUILD_FLAG, self.options)
        except MalformedConfigError as e:
            raise MalformedConfigError(str(e), self.android_dir / self.BUILD_FILE) from e

    def resolve_manifest_path(self, variant: Optional[str] = None) -> str:
        """
        Compose the merged manifest path for a variant.

        Layout: app/build/intermediates/manifests/full/[flavor/][x86/]<buildType>/AndroidManifest.xml
        """
        gradle_file = self.android_dir / self.BUILD_FILE
        build_type, flavor = split_variant(gradle_file, variant, self.options)

        content = gradle_file.read_text(encoding='utf-8')
        try:
            build_types = extract_variants(
                content, 'buildTypes', DEFAULT_BUILD_TYPES, self.options
            )
        except MalformedConfigError as e:
            raise MalformedConfigError(str(e), gradle_file) from e
        build_type = canonical_build_type(build_type, build_types, self.options)

        segments = [self.MANIFEST_BASE_DIR]
        if flavor:
            segments.append(flavor)

        if self.is_separate_build_enabled(content):
            segments.append(self.SEPARATE_BUILD_ARCH)

        segments.append(build_type)
        segments.append(self.MANIFEST_FILE_NAME)

        manifest_path = '/'.join(segments)
        self.logger.debug(f"Manifest for variant {variant or '(default)'}: {manifest_path}")
        return manifest_path
