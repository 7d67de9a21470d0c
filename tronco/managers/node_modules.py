import logging
import os
from typing import Dict, List, Optional, Tuple

from tronco.core.model import PackageNode, PackageTree
from tronco.core.resolved import link_resolved, normalize_resolved
from tronco.managers.base import TreeLoader

NODE_MODULES = "node_modules"


class NodeModulesLoader(TreeLoader):
    """Reads the installed layout straight from the disk."""

    @property
    def name(self) -> str:
        return "node_modules"

    @property
    def lock_files(self) -> list[str]:
        return ["package.json", NODE_MODULES]

    def __init__(self, metadata: Optional[Dict[str, str]] = None):
        # location -> resolved, usually taken from a lockfile we don't trust
        self.metadata = metadata or {}

    def _load(self, path: str, global_mode: bool) -> PackageTree:
        tree = self._load_root(path, global_mode)
        self.walk(tree, tree.root)

        if global_mode:
            # Everything installed globally was asked for by someone
            tree.root.dependencies = {name: "*" for name in tree.root.children}
            tree.root.dep_types = {name: "prod" for name in tree.root.children}

        return tree

    def walk(self, tree: PackageTree, parent: PackageNode) -> None:
        for name, entry_path in list_node_modules(parent.path):
            location = child_location(parent.location, name)
            if location in tree.inventory:
                continue

            if os.path.islink(entry_path):
                node = self.load_link(tree, parent, name, entry_path, location)
            else:
                node = self.load_dir(tree, parent, name, entry_path, location)
                self.walk(tree, node)

            parent.children[name] = node

    def load_dir(self, tree, parent, name, entry_path, location) -> PackageNode:
        node = PackageNode(name=name, path=entry_path, location=location, parent=parent)
        package = self._read_child_manifest(entry_path)
        if package is not None:
            self._apply_manifest(node, package)
            node.resolved = normalize_resolved(package.get("_resolved") or self.metadata.get(location))
        else:
            node.resolved = normalize_resolved(self.metadata.get(location))
        return tree.add(node)

    def load_link(self, tree, parent, name, entry_path, location) -> PackageNode:
        target_path = os.path.realpath(entry_path)
        target = self.load_target(tree, target_path)

        link = PackageNode(
            name=name,
            path=entry_path,
            location=location,
            parent=parent,
            is_link=True,
            target=target,
            version=target.version,
            package=target.package,
            has_manifest=target.has_manifest,
            resolved=link_resolved(entry_path, target_path),
        )
        logging.debug(f"Link {location} -> {target.location or '.'}")
        return tree.add(link)

    def load_target(self, tree: PackageTree, target_path: str) -> PackageNode:
        target_location = relative_location(tree.root.path, target_path)
        existing = tree.inventory.get(target_location)
        if existing is not None:
            return existing

        target = PackageNode(
            name=os.path.basename(target_path),
            path=target_path,
            location=target_location,
            fs_parent=find_fs_parent(tree, target_path),
        )
        package = self._read_child_manifest(target_path)
        if package is not None:
            self._apply_manifest(target, package)
            target.name = package.get("name") or target.name
        tree.add(target)

        self.walk(tree, target)
        return target


def list_node_modules(path: str) -> List[Tuple[str, str]]:
    """Sorted (name, path) pairs under path/node_modules, scopes flattened."""
    folder = os.path.join(path, NODE_MODULES)
    try:
        names = sorted(os.listdir(folder))
    except OSError as e:
        if os.path.exists(folder):
            logging.debug(f"Cannot read {folder}: {e}")
        return []

    entries = []
    for entry in names:
        if entry.startswith("."):
            continue

        entry_path = os.path.join(folder, entry)
        if entry.startswith("@") and os.path.isdir(entry_path) and not os.path.islink(entry_path):
            try:
                scoped = sorted(os.listdir(entry_path))
            except OSError as e:
                logging.debug(f"Cannot read scope {entry_path}: {e}")
                continue
            for sub in scoped:
                if not sub.startswith("."):
                    entries.append((f"{entry}/{sub}", os.path.join(entry_path, sub)))
            continue

        if os.path.isdir(entry_path):
            entries.append((entry, entry_path))

    return entries


def child_location(parent_location: str, name: str) -> str:
    if not parent_location:
        return f"{NODE_MODULES}/{name}"
    return f"{parent_location}/{NODE_MODULES}/{name}"


def relative_location(root_path: str, path: str) -> str:
    root_real = os.path.realpath(root_path)
    rel = os.path.relpath(path, root_real)
    if rel == ".":
        return ""
    if rel.startswith(".."):
        return path.replace(os.sep, "/")
    return rel.replace(os.sep, "/")


def find_fs_parent(tree: PackageTree, path: str) -> Optional[PackageNode]:
    """The deepest real node whose folder contains `path`."""
    best = None
    for node in tree.nodes():
        if node.is_link or not node.path:
            continue
        base = os.path.realpath(node.path)
        if path != base and path.startswith(base + os.sep):
            if best is None or len(base) > len(os.path.realpath(best.path)):
                best = node
    return best
