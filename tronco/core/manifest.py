import json
import logging
import re
from typing import Any, Dict, List, Tuple

from tronco.core.errors import ManifestParseError

MANIFEST = "package.json"

# Dependency blocks and the edge type each one produces
DEP_BLOCKS = {
    "dependencies": "prod",
    "devDependencies": "dev",
    "optionalDependencies": "optional",
    "peerDependencies": "peer",
}

# Higher wins when a name shows up in more than one block
TYPE_RANK = {"dev": 0, "prod": 1, "optional": 2, "peer": 3, "peerOptional": 3}

re_field_part = re.compile(r'([^.\[\]]+)|\[(\d+)\]')


def read_manifest(path: str) -> Dict[str, Any]:
    """Reads a package.json. FileNotFoundError is left for the caller."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            content = f.read()
        except UnicodeDecodeError as e:
            raise ManifestParseError(path, detail=str(e))

    try:
        data = json.loads(content)
    except ValueError as e:
        raise ManifestParseError(path, detail=str(e))

    if not isinstance(data, dict):
        raise ManifestParseError(path, detail="manifest is not an object")

    return data


def manifest_field(data: Any, dotted: str, default: Any = None) -> Any:
    """
    Free-form lookup over a raw manifest, e.g. "repository.url" or
    "maintainers[0].name". Returns `default` when any step is absent.
    """
    current = data
    for key, index in re_field_part.findall(dotted):
        if key:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        else:
            idx = int(index)
            if not isinstance(current, list) or idx >= len(current):
                return default
            current = current[idx]
    return current


def dependency_specs(package: Dict[str, Any], include_dev: bool) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Flattens the dependency blocks of a manifest into (specs, types), both keyed
    by name and ordered the way the names were first declared.
    """
    specs: Dict[str, str] = {}
    types: Dict[str, str] = {}

    peer_meta = package.get("peerDependenciesMeta") or {}

    for block, dep_type in _blocks_in_order(package):
        if dep_type == "dev" and not include_dev:
            continue

        deps = package.get(block) or {}
        if not isinstance(deps, dict):
            logging.debug(f"Ignoring malformed '{block}' block")
            continue

        for name, spec in deps.items():
            this_type = dep_type
            if dep_type == "peer" and (peer_meta.get(name) or {}).get("optional"):
                this_type = "peerOptional"

            current = types.get(name)
            if current is not None and TYPE_RANK[current] > TYPE_RANK[this_type]:
                continue

            specs[name] = str(spec) if spec is not None else ""
            types[name] = this_type

    return specs, types


def workspace_patterns(package: Dict[str, Any]) -> List[str]:
    workspaces = package.get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if not isinstance(workspaces, list):
        return []
    return [w for w in workspaces if isinstance(w, str)]


def _blocks_in_order(package: Dict[str, Any]):
    for key in package:
        if key in DEP_BLOCKS:
            yield key, DEP_BLOCKS[key]
