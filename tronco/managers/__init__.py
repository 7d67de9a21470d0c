import os
from .base import TreeLoader
from .lockfile import LockfileLoader, lockfile_metadata
from .node_modules import NodeModulesLoader


def detect_loader(path: str = ".", global_mode: bool = False) -> TreeLoader:
    """Checks files in the given directory and returns the right loader."""
    if global_mode:
        return NodeModulesLoader()

    try:
        files = os.listdir(path)
    except OSError:
        files = []

    lockfile = LockfileLoader()
    if lockfile.detect(files) and lockfile.usable(path):
        return lockfile

    # A lockfile we can't trust still knows where packages came from
    return NodeModulesLoader(metadata=lockfile_metadata(path))


def load_tree(path: str = ".", global_mode: bool = False):
    return detect_loader(path, global_mode).load(path, global_mode)
