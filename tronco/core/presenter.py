"""Renders a filtered view as a rich tree, parseable lines or JSON."""

import io
import json
import os
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from tronco.core.filter import TreeView, ViewNode
from tronco.core.manifest import manifest_field
from tronco.core.model import PackageNode, PackageTree
from tronco.core.problems import Problem


def render_human(tree: PackageTree, view: TreeView, color: bool = True, long: bool = False,
                 width: int = 120) -> str:
    root = view.root
    label = Text()
    if tree.root.has_manifest:
        label.append(tree.root.pkgid)
        label.append(" ")
    label.append(tree.root.path)
    if tree.error is not None:
        label.append(f" ERR! {tree.error}", style="bold red")

    rich_tree = Tree(label, guide_style="dim")

    def add(branch: Tree, item: ViewNode) -> None:
        for child in item.children:
            sub = branch.add(_human_label(child, long))
            if not child.deduped:
                add(sub, child)

    add(rich_tree, root)
    if not root.children:
        rich_tree.add(Text("(empty)", style="dim"))

    buffer = io.StringIO()
    console = Console(
        file=buffer,
        width=width,
        color_system="standard" if color else None,
        force_terminal=color,
        no_color=not color,
        highlight=False,
    )
    console.print(rich_tree)
    return buffer.getvalue().rstrip("\n")


def _human_label(item: ViewNode, long: bool) -> Text:
    node = item.node
    edge = item.edge
    text = Text()

    if node.missing:
        prefix = "UNMET OPTIONAL DEPENDENCY " if node.optional else "UNMET DEPENDENCY "
        text.append(prefix, style="yellow" if node.optional else "bold red")
        text.append(f"{node.name}@{edge.spec if edge else ''}")
        return text

    name_style = "dim" if item.deduped else ("bold" if item.matched else "")
    text.append(node.pkgid, style=name_style)

    if node.is_link and node.target is not None:
        rel = os.path.relpath(node.target.path, os.path.dirname(node.path))
        text.append(f" -> {rel if rel.startswith('.') else './' + rel}")

    if node.resolved and node.resolved.startswith("git"):
        text.append(f" ({node.resolved})", style="dim")

    if item.deduped:
        text.append(" deduped", style="dim")
        return text

    if node.invalid:
        requirers = [e for e in node.edges_in if e.invalid]
        detail = ""
        if requirers:
            bad = requirers[0]
            source = "the root project" if bad.source.is_root else bad.source.real.pkgid
            detail = f': "{bad.spec}" from {source}'
        text.append(f" invalid{detail}", style="bold red")

    if node.extraneous and not node.invalid:
        text.append(" extraneous", style="green")

    if edge is not None and edge.peer:
        text.append(" peer", style="magenta")

    if long:
        description = manifest_field(node.package, "description")
        if description:
            text.append(f"\n{description}", style="dim")

    return text


def render_parseable(tree: PackageTree, view: TreeView, long: bool = False) -> str:
    lines = []
    for item in view.walk():
        node = item.node
        if item.deduped or node.missing:
            continue
        if item is view.root and not node.has_manifest:
            lines.append(node.path)
            continue

        line = f"{node.path}:{node.pkgid}"
        if long:
            if node.extraneous:
                line += ":EXTRANEOUS"
            if node.invalid:
                line += ":INVALID"
        lines.append(line)
    return "\n".join(lines)


def render_json(tree: PackageTree, view: TreeView, problems: List[Problem], long: bool = False) -> str:
    return json.dumps(json_tree(tree, view, problems, long), indent=2)


def json_tree(tree: PackageTree, view: TreeView, problems: List[Problem], long: bool = False) -> Dict[str, Any]:
    root = tree.root
    result: Dict[str, Any] = {}

    if root.has_manifest and not tree.global_mode:
        result["name"] = root.package.get("name") or root.name
        if root.version:
            result["version"] = root.version

    if tree.error is not None:
        result["invalid"] = True

    dependencies = _json_children(view.root, long)
    if dependencies:
        result["dependencies"] = dependencies

    if problems:
        result["problems"] = [p.message for p in problems]

    return result


def _json_children(item: ViewNode, long: bool) -> Dict[str, Any]:
    out = {}
    for child in item.children:
        out[child.node.name] = _json_item(child, long)
    return out


def _json_item(item: ViewNode, long: bool) -> Dict[str, Any]:
    node = item.node

    if node.missing:
        if node.optional:
            return {}
        return {
            "required": item.edge.spec if item.edge else "",
            "missing": True,
            "problems": list(node.problems),
        }

    data: Dict[str, Any] = {}
    if node.version:
        data["version"] = node.version
    if node.resolved:
        data["resolved"] = node.resolved

    if item.deduped:
        return data

    if long:
        data.update(_json_long(node))

    if node.extraneous and not node.invalid:
        data["extraneous"] = True
    if node.invalid:
        data["invalid"] = True
    if node.problems:
        data["problems"] = list(node.problems)

    dependencies = _json_children(item, long)
    if dependencies:
        data["dependencies"] = dependencies

    return data


def _json_long(node: PackageNode) -> Dict[str, Any]:
    extra: Dict[str, Any] = {
        "name": node.package_name,
        "path": node.path,
        "_id": f"{node.package_name}@{node.version}",
    }
    description: Optional[str] = manifest_field(node.package, "description")
    if description:
        extra["description"] = description
    for flag in ("dev", "optional", "peer"):
        if getattr(node, flag):
            extra[flag] = True
    return extra
