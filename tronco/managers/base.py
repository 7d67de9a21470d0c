import glob
import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional

from tronco.core.edges import finalize_tree
from tronco.core.errors import ManifestParseError
from tronco.core.manifest import MANIFEST, dependency_specs, read_manifest, workspace_patterns
from tronco.core.model import PackageNode, PackageTree


class TreeLoader(ABC):
    """Base class inherited by every way of loading an installed tree."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Friendly name of the source (e.g., node_modules, package-lock.json)."""
        pass

    @property
    @abstractmethod
    def lock_files(self) -> List[str]:
        """List of exact filenames that make this loader usable."""
        pass

    def detect(self, files: List[str]) -> bool:
        """
        Returns True if this loader supports the given directory listing.
        Default implementation checks for exact match in lock_files.
        """
        for lock_file in self.lock_files:
            if lock_file in files:
                return True
        return False

    def load(self, path: str, global_mode: bool = False) -> PackageTree:
        path = os.path.abspath(path)
        logging.debug(f"[{self.name}] loading tree at {path} (global={global_mode})")

        tree = self._load(path, global_mode)
        tree.loader = self.name
        finalize_tree(tree)

        logging.debug(f"[{self.name}] {len(tree.inventory)} nodes loaded.")
        return tree

    @abstractmethod
    def _load(self, path: str, global_mode: bool) -> PackageTree:
        pass

    def _load_root(self, path: str, global_mode: bool) -> PackageTree:
        root = PackageNode(
            name=os.path.basename(path),
            path=path,
            location="",
            is_root=True,
        )
        tree = PackageTree(root=root, global_mode=global_mode)
        tree.add(root)

        if global_mode:
            return tree

        try:
            package = read_manifest(os.path.join(path, MANIFEST))
        except FileNotFoundError:
            logging.debug(f"No root manifest in {path}")
            return tree
        except ManifestParseError as e:
            logging.warning(f"Broken root manifest {e.path}: {e.detail}")
            tree.error = ManifestParseError(e.path, "Failed to parse root package.json", e.detail)
            return tree

        self._apply_manifest(root, package, include_dev=True)
        root.name = package.get("name") or root.name
        self._add_workspaces(root)
        return tree

    @staticmethod
    def _add_workspaces(root: PackageNode) -> None:
        for pattern in workspace_patterns(root.package):
            for ws_path in sorted(glob.glob(os.path.join(root.path, pattern))):
                if not os.path.isfile(os.path.join(ws_path, MANIFEST)):
                    continue
                try:
                    ws_name = read_manifest(os.path.join(ws_path, MANIFEST)).get("name")
                except ManifestParseError as e:
                    logging.warning(f"Skipping workspace {ws_path}: {e.detail}")
                    continue
                if not ws_name:
                    ws_name = os.path.basename(ws_path)
                rel = os.path.relpath(ws_path, root.path).replace(os.sep, "/")
                root.dependencies[ws_name] = f"file:{rel}"
                root.dep_types[ws_name] = "workspace"

    @staticmethod
    def _apply_manifest(node: PackageNode, package: dict, include_dev: bool = False) -> None:
        node.package = package
        node.has_manifest = True
        node.version = str(package.get("version") or "")
        node.dependencies, node.dep_types = dependency_specs(package, include_dev)

    @staticmethod
    def _read_child_manifest(path: str) -> Optional[dict]:
        try:
            return read_manifest(os.path.join(path, MANIFEST))
        except (OSError, ManifestParseError) as e:
            logging.debug(f"Unreadable manifest under {path}: {e}")
            return None
