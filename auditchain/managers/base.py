from abc import ABC, abstractmethod
from typing import Any, List
from auditchain.core.model import DependencyNode


class ManagerError(Exception):
    """Raised when an input document cannot be read or produced."""


class PackageManager(ABC):
    """Base class for the sources of audit reports and dependency trees."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Friendly ecosystem name (e.g., NPM)."""
        pass

    @property
    @abstractmethod
    def lock_files(self) -> List[str]:
        """List of exact filenames that mark a supported project."""
        pass

    def detect(self, files: List[str]) -> bool:
        """Returns True if this manager supports a directory holding `files`."""
        for lock_file in self.lock_files:
            if lock_file in files:
                return True
        return False

    @abstractmethod
    def get_audit_report(self) -> Any:
        pass

    @abstractmethod
    def get_dependency_tree(self) -> DependencyNode:
        pass
