import json
import logging
import os
from typing import Any, Dict, List, Optional

from tronco.core.manifest import dependency_specs
from tronco.core.model import PackageNode, PackageTree
from tronco.core.resolved import link_resolved, normalize_resolved
from tronco.managers.base import TreeLoader
from tronco.managers.node_modules import (
    NODE_MODULES,
    NodeModulesLoader,
    child_location,
    find_fs_parent,
    list_node_modules,
)

# Checked in this order, the first one found wins
LOCKFILES = ["npm-shrinkwrap.json", "package-lock.json", os.path.join(NODE_MODULES, ".package-lock.json")]


class LockfileLoader(TreeLoader):
    """Builds the tree from an authoritative v2+ lockfile."""

    @property
    def name(self) -> str:
        return "package-lock.json"

    @property
    def lock_files(self) -> list[str]:
        return ["npm-shrinkwrap.json", "package-lock.json"]

    def detect(self, files: List[str]) -> bool:
        # Only worth it when the lockfile describes the layout
        return super().detect(files) or NODE_MODULES in files

    def usable(self, path: str) -> bool:
        data = read_lockfile(path)
        return data is not None and is_authoritative(data)

    def _load(self, path: str, global_mode: bool) -> PackageTree:
        data = read_lockfile(path)
        if data is None or not is_authoritative(data):
            raise Exception(f"No authoritative lockfile found in {path}.")

        tree = self._load_root(path, global_mode)
        packages = data["packages"]

        if not tree.root.has_manifest and tree.error is None:
            # Fall back to what the lockfile remembers about the root
            self._apply_root_entry(tree.root, packages.get("", {}))

        # Shortest keys first so parents exist before their children
        for location in sorted(packages, key=lambda k: (k.count(NODE_MODULES), k)):
            if location == "" or location in tree.inventory:
                continue
            if parent_of(location) is None:
                self._load_target(tree, location, packages)
            else:
                self._load_entry(tree, location, packages)

        self._attach_children(tree)
        extraneous = self._load_strays(tree)
        logging.debug(f"Lockfile tree built. {len(packages)} entries, {extraneous} not in lockfile.")
        return tree

    def _apply_root_entry(self, root: PackageNode, entry: Dict[str, Any]) -> None:
        if not entry:
            return
        root.version = str(entry.get("version") or "")
        root.dependencies, root.dep_types = dependency_specs(entry, include_dev=True)

    def _load_entry(self, tree: PackageTree, location: str, packages: Dict[str, Any]) -> PackageNode:
        entry = packages.get(location) or {}
        name = entry_name(location)

        path = os.path.join(tree.root.path, *location.split("/"))

        if entry.get("link"):
            target_location = (entry.get("resolved") or "").replace("\\", "/")
            target = tree.inventory.get(target_location)
            if target is None:
                target = self._load_target(tree, target_location, packages)

            link = PackageNode(
                name=name,
                path=path,
                location=location,
                is_link=True,
                target=target,
                version=target.version,
                package=target.package,
                has_manifest=target.has_manifest,
                resolved=link_resolved(path, target.path),
            )
            return tree.add(link)

        node = PackageNode(
            name=name,
            path=path,
            location=location,
            version=str(entry.get("version") or ""),
            resolved=normalize_resolved(entry.get("resolved")),
            package=entry,
            has_manifest=True,
            extraneous=bool(entry.get("extraneous")),
        )
        node.dependencies, node.dep_types = dependency_specs(entry, include_dev=False)
        return tree.add(node)

    def _load_target(self, tree: PackageTree, location: str, packages: Dict[str, Any]) -> PackageNode:
        entry = packages.get(location) or {}
        path = os.path.normpath(os.path.join(tree.root.path, *location.split("/")))

        target = PackageNode(
            name=entry.get("name") or os.path.basename(path),
            path=path,
            location=location,
            version=str(entry.get("version") or ""),
            resolved=normalize_resolved(entry.get("resolved")),
            package=entry,
            has_manifest=bool(entry),
            fs_parent=find_fs_parent(tree, os.path.realpath(path)),
        )
        target.dependencies, target.dep_types = dependency_specs(entry, include_dev=False)
        return tree.add(target)

    def _attach_children(self, tree: PackageTree) -> None:
        for location, node in tree.inventory.items():
            if not location:
                continue
            parent_location = parent_of(location)
            if parent_location is None:
                continue
            parent = tree.inventory.get(parent_location)
            if parent is None:
                logging.warning(f"Lockfile entry {location} has no parent entry {parent_location}")
                continue
            node.parent = parent
            parent.children[node.name] = node

    def _load_strays(self, tree: PackageTree) -> int:
        """Anything on disk the lockfile does not know about is extraneous."""
        walker = NodeModulesLoader()
        count = 0

        for node in list(tree.inventory.values()):
            if node.is_link:
                continue
            for name, entry_path in list_node_modules(node.path):
                location = child_location(node.location, name)
                if location in tree.inventory:
                    continue

                before = set(tree.inventory)
                if os.path.islink(entry_path):
                    stray = walker.load_link(tree, node, name, entry_path, location)
                else:
                    stray = walker.load_dir(tree, node, name, entry_path, location)
                    walker.walk(tree, stray)
                node.children[name] = stray

                for added in set(tree.inventory) - before:
                    tree.inventory[added].extraneous = True
                    count += 1

        return count


def entry_name(location: str) -> str:
    marker = f"{NODE_MODULES}/"
    idx = location.rfind(marker)
    if idx == -1:
        return os.path.basename(location)
    return location[idx + len(marker):]


def parent_of(location: str) -> Optional[str]:
    marker = f"/{NODE_MODULES}/"
    if location.startswith(f"{NODE_MODULES}/") and marker not in location:
        return ""
    idx = location.rfind(marker)
    if idx == -1:
        return None
    return location[:idx]


def read_lockfile(path: str) -> Optional[Dict[str, Any]]:
    for candidate in LOCKFILES:
        lock_path = os.path.join(path, candidate)
        if not os.path.isfile(lock_path):
            continue
        try:
            with open(lock_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f"Error reading {lock_path}: {e}")
            continue
        if isinstance(data, dict):
            logging.debug(f"Using lockfile {lock_path}")
            return data
    return None


def is_authoritative(data: Dict[str, Any]) -> bool:
    packages = data.get("packages")
    if not isinstance(packages, dict):
        return False
    try:
        version = int(data.get("lockfileVersion") or 0)
    except (TypeError, ValueError):
        return False
    return version >= 2 and any(key for key in packages)


def lockfile_metadata(path: str) -> Dict[str, str]:
    """location -> resolved, from whatever lockfile sections are present."""
    data = read_lockfile(path)
    if data is None:
        return {}

    metadata = {}
    for location, entry in (data.get("packages") or {}).items():
        if location and isinstance(entry, dict) and entry.get("resolved"):
            metadata[location] = entry["resolved"]

    def visit(deps: Dict[str, Any], prefix: str) -> None:
        for name, entry in deps.items():
            if not isinstance(entry, dict):
                continue
            location = child_location(prefix, name)
            if entry.get("resolved"):
                metadata.setdefault(location, entry["resolved"])
            visit(entry.get("dependencies") or {}, location)

    visit(data.get("dependencies") or {}, "")
    return metadata
