import os
from .base import ManagerError, PackageManager
from .npm import NpmManager

MANAGERS = [
    NpmManager,
]


def detect_manager(project_dir="."):
    """Checks files in `project_dir` and returns the correct manager."""
    try:
        files = os.listdir(project_dir)
    except OSError:
        return None

    for manager_cls in MANAGERS:
        manager = manager_cls(project_dir)
        if manager.detect(files):
            return manager

    return None


__all__ = ["MANAGERS", "ManagerError", "PackageManager", "NpmManager", "detect_manager"]
