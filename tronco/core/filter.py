import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from tronco.core.edges import child_entries
from tronco.core.model import Edge, PackageNode, PackageTree
from tronco.core.specifier import parse_filter_term, satisfies

DOT = "."


@dataclass(eq=False)
class ViewNode:
    """One occurrence of a package in a rendered tree."""
    node: PackageNode
    edge: Optional[Edge] = None
    depth: int = -1  # the display root sits above depth 0
    deduped: bool = False
    matched: bool = False
    children: List["ViewNode"] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.node.name


@dataclass(eq=False)
class TreeView:
    root: ViewNode
    terms: Tuple[str, ...] = ()
    depth: Optional[int] = None
    matched: bool = True

    def walk(self):
        """Depth-first over every occurrence in the view, root included."""
        stack = [self.root]
        while stack:
            item = stack.pop()
            yield item
            stack.extend(reversed(item.children))

    def expanded_nodes(self) -> List[PackageNode]:
        """Unique nodes shown in full (not as deduped references)."""
        nodes = []
        for item in self.walk():
            if not item.deduped:
                nodes.append(item.node)
        return nodes


def effective_depth(depth: Optional[int], all_: bool, terms: Sequence[str]) -> Optional[int]:
    """None means unbounded."""
    if depth is not None:
        return depth
    if all_ or terms:
        return None
    return 0


def build_view(
    tree: PackageTree,
    terms: Sequence[str] = (),
    depth: Optional[int] = None,
    edge_filter: Optional[Callable] = None,
) -> TreeView:
    """
    Builds the occurrence tree breadth-first, so a package expands where it is
    shallowest and every later occurrence is a deduped leaf. With filter terms
    the result keeps only matches and their ancestors. The graph is not touched.
    """
    terms = tuple(terms)
    dot_only = bool(terms) and all(t == DOT for t in terms)
    bound = 0 if dot_only else depth
    matchers = [_matcher(t) for t in terms]

    root = ViewNode(node=tree.root)
    seen = {id(tree.root)}
    queue = deque([root])

    while queue:
        item = queue.popleft()
        child_depth = item.depth + 1
        if bound is not None and child_depth > bound:
            continue

        # Dependency-type filters only make sense for the root's own edges
        entry_filter = edge_filter if item is root else None

        for edge, child in child_entries(tree, item.node, entry_filter):
            key = id(child.real)
            occurrence = ViewNode(node=child, edge=edge, depth=child_depth)
            if key in seen:
                occurrence.deduped = True
            else:
                seen.add(key)
                if not child.missing:
                    queue.append(occurrence)
            item.children.append(occurrence)

    view = TreeView(root=root, terms=terms, depth=depth)
    if not terms:
        return view

    for item in view.walk():
        if item is not root:
            item.matched = any(match(item) for match in matchers)

    matched_any = _prune(root)
    view.matched = matched_any or dot_only
    logging.debug(f"Filter {terms} matched={matched_any}")
    return view


def _prune(item: ViewNode) -> bool:
    kept = [child for child in item.children if _prune(child)]
    item.children = kept
    return item.matched or bool(kept)


def _matcher(term: str) -> Callable[[ViewNode], bool]:
    if term == DOT:
        def match_dot(item: ViewNode) -> bool:
            return item.depth == 0 and item.edge is not None and not item.node.missing
        return match_dot

    name, range_ = parse_filter_term(term)

    def match(item: ViewNode) -> bool:
        node = item.node
        if node.missing or node.name != name:
            return False
        if range_ is None:
            return True
        return satisfies(node.real.version, range_)

    return match


def dep_type_filter(dev: bool = False, production: bool = False, link: bool = False) -> Optional[Callable]:
    """Edge filter for the root: dev-only, production-only and/or links-only."""
    if not (dev or production or link):
        return None

    def allowed(edge: Optional[Edge], node: PackageNode) -> bool:
        if dev and (edge is None or not edge.dev):
            return False
        if production and edge is not None and (edge.dev or edge.peer):
            return False
        if link and not node.is_link:
            return False
        return True

    return allowed
