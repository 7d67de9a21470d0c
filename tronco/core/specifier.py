import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from nodesemver import satisfies as semver_satisfies, valid, valid_range

from tronco.core.model import PackageNode

re_git = re.compile(r'^(git\+[a-z]+://|git://|git@|(github|gitlab|bitbucket|gist):)')
re_hosted_shorthand = re.compile(r'^[\w.-]+/[\w.-]+(#.*)?$')
re_remote = re.compile(r'^https?://')


@dataclass(frozen=True)
class Specifier:
    """A parsed dependency specifier: range, tag, alias, git, remote, file."""
    raw: str
    type: str
    name: str = ""
    range: str = ""
    target: str = ""


def parse_spec(raw: str) -> Specifier:
    raw = (raw or "").strip()

    if raw.startswith("npm:"):
        alias_name, alias_range = split_name_range(raw[4:])
        return Specifier(raw, "alias", name=alias_name, range=alias_range or "*")

    if raw.startswith(("file:", "link:")):
        return Specifier(raw, "directory", target=raw.split(":", 1)[1])

    if raw.startswith(("./", "../", "/", "~/")):
        return Specifier(raw, "directory", target=raw)

    if re_git.match(raw) or re_hosted_shorthand.match(raw):
        return Specifier(raw, "git")

    if re_remote.match(raw):
        return Specifier(raw, "remote")

    if raw in ("", "*") or _is_range(raw):
        return Specifier(raw, "range", range=raw or "*")

    return Specifier(raw, "tag")


def _is_range(raw: str) -> bool:
    try:
        return valid_range(raw, True) is not None
    except ValueError:
        return False


def split_name_range(term: str) -> Tuple[str, str]:
    """Splits name@range, minding the leading @ of scoped names."""
    at = term.find("@", 1 if term.startswith("@") else 0)
    if at == -1:
        return term, ""
    return term[:at], term[at + 1:]


def satisfies(version: str, range_: str) -> bool:
    if range_ in ("", "*"):
        return bool(version)
    if not version or valid(version, True) is None:
        return False
    try:
        return semver_satisfies(version, range_, True)
    except ValueError:
        return False


def dep_valid(node: PackageNode, spec: Specifier, source: PackageNode) -> bool:
    """Does the resolved `node` satisfy `spec` as declared by `source`?"""
    real = node.real

    if spec.type == "range":
        return satisfies(real.version, spec.range)

    if spec.type == "alias":
        if real.package_name != spec.name:
            return False
        return satisfies(real.version, spec.range)

    if spec.type == "directory":
        wanted = os.path.realpath(os.path.join(source.real.path, os.path.expanduser(spec.target)))
        return os.path.realpath(real.path) == wanted

    # git, remote tarballs and dist-tags cannot be checked against the disk
    return True


def parse_filter_term(term: str) -> Tuple[str, Optional[str]]:
    name, range_ = split_name_range(term)
    return name, (range_ or None)
