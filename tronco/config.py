"""Options for listing a dependency tree."""

import os
import re
import shutil
import sys
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

re_only_dev = re.compile(r'^dev(elopment)?$')
re_only_prod = re.compile(r'^prod(uction)?$')


@dataclass
class LsOptions:
    prefix: str = "."
    all: bool = False
    depth: Optional[int] = None

    # dependency type selection, applied to the root's edges
    dev: bool = False
    development: bool = False
    production: bool = False
    only: Optional[str] = None
    link: bool = False

    global_: bool = False
    global_dir: Optional[str] = None

    # output
    json: bool = False
    parseable: bool = False
    long: bool = False
    color: bool = True

    @classmethod
    def from_flat(cls, flat: Mapping[str, Any]) -> "LsOptions":
        """Accepts npm-style flat option names (`global`, `only`, ...)."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in flat.items():
            key = key.replace("-", "_")
            if key == "global":
                key = "global_"
            if key in known:
                values[key] = value

        depth = values.get("depth")
        if depth is not None and depth != float("inf"):
            values["depth"] = int(depth)
        elif depth == float("inf"):
            values["depth"] = None

        return cls(**values)

    @property
    def only_dev(self) -> bool:
        return self.dev or self.development or bool(self.only and re_only_dev.match(self.only))

    @property
    def only_prod(self) -> bool:
        return self.production or bool(self.only and re_only_prod.match(self.only))

    def resolve_global_dir(self) -> str:
        if self.global_dir:
            return os.path.abspath(self.global_dir)
        return default_global_dir()


def default_prefix() -> str:
    env_prefix = os.environ.get("NPM_CONFIG_PREFIX") or os.environ.get("npm_config_prefix")
    if env_prefix:
        return env_prefix

    node = shutil.which("node")
    if node:
        node_dir = os.path.dirname(os.path.realpath(node))
        # bin/node on posix, node.exe right in the prefix on windows
        return node_dir if sys.platform == "win32" else os.path.dirname(node_dir)

    return "/usr/local"


def default_global_dir() -> str:
    prefix = default_prefix()
    if sys.platform == "win32":
        return os.path.join(prefix, "node_modules")
    return os.path.join(prefix, "lib", "node_modules")
