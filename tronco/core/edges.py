import logging
from collections import deque
from typing import Dict, List, Optional, Tuple

from tronco.core.model import Edge, PackageNode, PackageTree
from tronco.core.specifier import dep_valid, parse_spec


def link_edges(tree: PackageTree) -> None:
    """Resolves every declared dependency of every real node in the tree."""
    for node in tree.nodes():
        if node.is_link:
            continue
        node.edges_out.clear()

    for node in tree.nodes():
        if node.is_link:
            continue

        for name, spec in node.dependencies.items():
            dep_type = node.dep_types.get(name, "prod")
            edge = Edge(name=name, spec=spec, type=dep_type, source=node)

            # Peers are provided by whoever depends on us, so start one level up
            start = node
            if edge.peer and not node.is_root and node.resolve_parent is not None:
                start = node.resolve_parent

            found = start.resolve(name)
            if found is not None:
                edge.to = found
                edge.valid = dep_valid(found, parse_spec(spec), node)
                found.edges_in.append(edge)
            else:
                edge.placeholder = PackageNode(
                    name=name,
                    missing=True,
                    optional=edge.optional,
                    peer=edge.peer,
                    dev=edge.dev,
                )

            node.edges_out[name] = edge

    logging.debug(f"Linked edges for {len(tree.inventory)} nodes.")


def mark_extraneous(tree: PackageTree) -> None:
    """Anything the root cannot reach through edges is extraneous."""
    if tree.global_mode:
        for node in tree.nodes():
            node.extraneous = False
        return

    reached = {id(tree.root)}
    queue = deque([tree.root])

    while queue:
        node = queue.popleft()
        for edge in node.real.edges_out.values():
            target = edge.to
            if target is None:
                continue
            for hop in (target, target.real):
                if id(hop) not in reached:
                    reached.add(id(hop))
                    queue.append(hop)

    forced = 0
    for node in tree.nodes():
        if node.is_root:
            continue
        if node.extraneous:
            forced += 1
            continue
        node.extraneous = id(node) not in reached

    if forced:
        logging.debug(f"{forced} nodes were already flagged extraneous by the loader.")


def calc_dep_flags(tree: PackageTree) -> None:
    """
    A node is dev (optional, peer) only when every path from the root to it
    goes through a dev (optional, peer) edge.
    """
    flags: Dict[int, Tuple[bool, bool, bool]] = {id(tree.root): (False, False, False)}
    queue = deque([tree.root])

    while queue:
        node = queue.popleft()
        dev, optional, peer = flags[id(node)]

        for edge in node.real.edges_out.values():
            target = edge.to
            if target is None:
                continue

            incoming = (dev or edge.dev, optional or edge.optional, peer or edge.peer)

            for hop in (target, target.real):
                current = flags.get(id(hop))
                merged = incoming if current is None else tuple(a and b for a, b in zip(current, incoming))
                if merged != current:
                    flags[id(hop)] = merged
                    queue.append(hop)

    for node in tree.nodes():
        if node.is_root:
            continue
        node.dev, node.optional, node.peer = flags.get(id(node), (False, False, False))


def finalize_tree(tree: PackageTree) -> PackageTree:
    link_edges(tree)
    mark_extraneous(tree)
    calc_dep_flags(tree)
    return tree


def child_entries(tree: PackageTree, node: PackageNode, edge_filter=None) -> List[Tuple[Optional[Edge], PackageNode]]:
    """
    What shows up under `node`: its declared dependencies in order (missing
    ones as placeholders), then its extraneous physical children by name.
    """
    real = node.real
    entries: List[Tuple[Optional[Edge], PackageNode]] = []
    shown = set()

    for edge in real.edges_out.values():
        if edge.to is None and edge.type == "peerOptional":
            continue
        child = edge.to if edge.to is not None else edge.placeholder
        if edge_filter is not None and not edge_filter(edge, child):
            continue
        entries.append((edge, child))
        shown.add(id(child))

    for name in sorted(real.children):
        child = real.children[name]
        if id(child) in shown:
            continue
        # global installs are never extraneous, but unrequired ones still show up
        orphan = tree.global_mode and not child.edges_in
        if not (child.extraneous or orphan):
            continue
        if edge_filter is not None and not edge_filter(None, child):
            continue
        entries.append((None, child))

    return entries
