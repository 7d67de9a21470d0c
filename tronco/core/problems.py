import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tronco.core.edges import child_entries
from tronco.core.model import Edge, PackageNode, PackageTree

CATEGORIES = ("error", "invalid", "missing", "extraneous")


@dataclass(frozen=True)
class Problem:
    kind: str
    message: str
    node: PackageNode = field(compare=False, repr=False)
    optional: bool = False

    def __str__(self) -> str:
        return self.message


def detect_problems(tree: PackageTree) -> List[Problem]:
    """
    Classifies every node reachable for display, depth-first, and returns the
    problems grouped by category (errors, invalid, missing, extraneous).
    Each node also keeps the messages that concern itself.
    """
    buckets: Dict[str, List[Problem]] = {kind: [] for kind in CATEGORIES}
    seen_messages = set()

    def record(kind: str, message: str, node: PackageNode, optional: bool = False) -> None:
        node.add_problem(message)
        if message in seen_messages:
            return
        seen_messages.add(message)
        buckets[kind].append(Problem(kind, message, node, optional))

    root = tree.root
    if tree.error is not None:
        root.invalid = True
        record("error", f"error in {root.path}: {tree.error}", root)

    visited = {id(root)}

    def visit(node: PackageNode) -> None:
        for edge, child in child_entries(tree, node):
            key = id(child.real)
            if key in visited:
                # back-reference, already classified on its first visit
                continue
            visited.add(key)

            classify(edge, child, node)
            if not child.missing:
                visit(child)

    def classify(edge: Optional[Edge], child: PackageNode, requirer: PackageNode) -> None:
        if child.missing:
            message = f"missing: {child.name}@{edge.spec}, required by {requirer.real.pkgid}"
            record("missing", message, child, optional=edge.optional)
            return

        if any(e.invalid for e in child.edges_in):
            # invalid wins over extraneous
            child.invalid = True
            record("invalid", f"invalid: {child.pkgid} {child.path}", child)
        elif child.extraneous:
            record("extraneous", f"extraneous: {child.pkgid} {child.path}", child)

    visit(root)

    problems = [p for kind in CATEGORIES for p in buckets[kind]]
    tree.problems = problems
    logging.debug(f"Problem detection done. {len(problems)} problems found.")
    return problems


def is_fatal(problems: List[Problem]) -> bool:
    """A missing optional dependency alone does not fail the listing."""
    return any(not (p.kind == "missing" and p.optional) for p in problems)
