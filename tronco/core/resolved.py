import os
import re
from typing import Optional
from urllib.parse import urlsplit

HOSTED_GIT = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}

re_shorthand = re.compile(r'^(github|gitlab|bitbucket):([\w.-]+/[\w.-]+?)(\.git)?(#.*)?$')
re_scp = re.compile(r'^(?:git\+)?(?:ssh://)?git@([^:/]+)[:/](.+)$')


def normalize_resolved(resolved: Optional[str]) -> Optional[str]:
    """
    Canonical origin of an installed package. Hosted git repos are always
    shown over git+ssh, anything that is not a recognizable origin is dropped.
    """
    if not resolved or not isinstance(resolved, str):
        return None

    if resolved.startswith("file:"):
        return resolved

    shorthand = re_shorthand.match(resolved)
    if shorthand:
        host = HOSTED_GIT[shorthand.group(1)]
        return f"git+ssh://git@{host}/{shorthand.group(2)}.git{shorthand.group(4) or ''}"

    if resolved.startswith(("git+", "git://", "git@")):
        return _normalize_git(resolved)

    if resolved.startswith(("http://", "https://")):
        return resolved

    return None


def link_resolved(link_path: str, target_path: str) -> str:
    rel = os.path.relpath(target_path, os.path.dirname(link_path))
    return "file:" + rel.replace(os.sep, "/")


def _normalize_git(url: str) -> str:
    committish = ""
    if "#" in url:
        url, committish = url.split("#", 1)
        committish = "#" + committish

    scp = re_scp.match(url)
    if scp:
        host, path = scp.group(1), scp.group(2)
    else:
        parts = urlsplit(url.replace("git+", "", 1) if url.startswith("git+") else url)
        host, path = parts.hostname or "", parts.path.lstrip("/")

    if host in HOSTED_GIT.values():
        if not path.endswith(".git"):
            path += ".git"
        return f"git+ssh://git@{host}/{path}{committish}"

    return f"{url}{committish}"
