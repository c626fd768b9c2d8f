"""
Build Adapters - Abstract interface for Android project builds.

This module defines the IBuildAdapter abstract base class, which gives the
orchestrator one way to name the install tasks to run for a variant and
find the manifest generated for it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from runandroid.utils.logger import get_logger


class MalformedConfigError(ValueError):
    """A build description or manifest lacks an expected block, assignment or brace."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = str(path) if path is not None else None
        if self.path:
            message = f"{self.path}: {message}"
        super().__init__(message)


@dataclass
class ManifestInfo:
    """
    Identifiers read from a generated AndroidManifest.xml.

    Attributes:
        package_name: The application package, e.g. 'com.example.app'.
        activity_name: Fully qualified launch activity, e.g. 'com.example.app.MainActivity'.
    """
    package_name: str
    activity_name: str

    @property
    def component(self) -> str:
        """The '<package>/<activity>' component string passed to 'am start -n'."""
        return f"{self.package_name}/{self.activity_name}"


class IBuildAdapter(ABC):
    """
    Abstract base class for Android build adapters.

    A concrete adapter knows where its build description lives, which
    tasks install a variant on the device, and where the merged manifest
    for that variant ends up.
    """

    def __init__(self, root_dir: Path):
        self.root_dir = root_dir
        self.logger = get_logger(self.__class__.__module__)

    @abstractmethod
    def install_tasks(
        self,
        variant: Optional[str] = None,
        flavor: Optional[str] = None,
        install_debug: Optional[str] = None
    ) -> List[str]:
        """
        Build the argument list that installs the requested variant.

        Args:
            variant: Combined variant name, e.g. 'demoRelease'.
            flavor: Deprecated alias used only when no variant is given.
            install_debug: Extra argument passed through to the build tool.

        Returns:
            The build tool arguments.
        """
        pass

    @abstractmethod
    def resolve_manifest_path(self, variant: Optional[str] = None) -> str:
        """
        Compose the path of the generated manifest for a variant.

        Args:
            variant: Combined variant name, or None for the default build type.

        Returns:
            A path relative to the build tool's working directory.

        Raises:
            MalformedConfigError: If the build description is incomplete.
            FileNotFoundError: If the build description cannot be read.
        """
        pass
