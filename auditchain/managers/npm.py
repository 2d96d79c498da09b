import json
import logging
import subprocess
from typing import Any
from auditchain import config
from auditchain.managers.base import ManagerError, PackageManager
from auditchain.core.model import DependencyNode


class NpmManager(PackageManager):
    def __init__(self, project_dir: str = "."):
        self.project_dir = project_dir

    @property
    def name(self) -> str:
        return "NPM"

    @property
    def lock_files(self) -> list[str]:
        return ["package.json", "package-lock.json"]

    def get_audit_report(self) -> Any:
        return self.run_npm_audit()

    def get_dependency_tree(self) -> DependencyNode:
        return self.load_tree(self.run_npm_ls())

    @staticmethod
    def read_json(path: str) -> Any:
        logging.debug(f"Reading {path}...")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise ManagerError(f"Error reading {path}: {e}")

    @staticmethod
    def load_tree(data: Any) -> DependencyNode:
        """
        Builds the node tree from `npm ls --all --json` (or a v1 package-lock).
        Children keep the document's key order.
        """
        if not isinstance(data, dict):
            logging.warning("Dependency tree is not a JSON object; treating it as empty.")
            return DependencyNode("root", "")

        root_name = data.get("name") if isinstance(data.get("name"), str) else ""

        def new_node(name, current_data):
            version = current_data.get("version", "")
            return DependencyNode(name, version if isinstance(version, str) else "")

        root = new_node(root_name or "root", data)
        # (document, node built from it); each node gets its children in key order
        stack = [(data, root)]

        while stack:
            current_data, node = stack.pop()

            dependencies = current_data.get("dependencies")
            if not isinstance(dependencies, dict):
                continue

            for dep_name, dep_data in dependencies.items():
                if not isinstance(dep_data, dict):
                    dep_data = {}
                child = new_node(dep_name, dep_data)
                node.children.append(child)
                stack.append((dep_data, child))

        return root

    def run_npm_ls(self) -> Any:
        logging.info("Running npm ls --all --json (this may warn about unmet peer deps) ...")
        return self._run_npm(["npm", "ls", "--all", "--json"], config.npm_ls_timeout)

    def run_npm_audit(self) -> Any:
        logging.info("Running npm audit --json ...")
        return self._run_npm(["npm", "audit", "--json"], config.npm_audit_timeout)

    def _run_npm(self, cmd: list[str], timeout: int) -> Any:
        try:
            # npm exits non-zero on findings or unmet peers; stdout still holds JSON
            proc = subprocess.run(
                cmd,
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logging.error(f"npm Error: {e}")
            raise ManagerError(f"Fail to run {' '.join(cmd)}: {e}")

        if proc.returncode != 0:
            logging.debug(f"{' '.join(cmd)} exited with {proc.returncode}")

        try:
            return json.loads(proc.stdout)
        except ValueError as e:
            raise ManagerError(f"{' '.join(cmd)} did not print JSON: {e}")
