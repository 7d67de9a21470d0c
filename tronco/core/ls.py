import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from tronco.config import LsOptions
from tronco.core.errors import LsProblemsError
from tronco.core.filter import TreeView, build_view, dep_type_filter, effective_depth
from tronco.core.model import PackageTree
from tronco.core.presenter import render_human, render_json, render_parseable
from tronco.core.problems import Problem, detect_problems, is_fatal
from tronco.managers import detect_loader

STATUS_OK = "ok"
STATUS_PROBLEMS = "problems"
STATUS_NO_MATCH = "no-match"


@dataclass
class LsResult:
    tree: PackageTree
    view: TreeView
    problems: List[Problem] = field(default_factory=list)
    status: str = STATUS_OK
    error: Optional[Exception] = None

    @property
    def messages(self) -> List[str]:
        return [p.message for p in self.problems]


def ls(options: Optional[LsOptions] = None, terms: Sequence[str] = ()) -> LsResult:
    """
    Loads the tree under `options.prefix` (or the global directory), annotates
    it with problems and builds the filtered view.
    """
    options = options or LsOptions()
    terms = tuple(terms)

    if options.global_:
        # the global root sits right above its node_modules
        path = os.path.dirname(options.resolve_global_dir())
    else:
        path = options.prefix

    loader = detect_loader(path, options.global_)
    logging.info(f"Listing {path} with {loader.name}")
    tree = loader.load(path, options.global_)

    all_problems = detect_problems(tree)

    depth = effective_depth(options.depth, options.all, terms)
    edge_filter = dep_type_filter(options.only_dev, options.only_prod, options.link)
    view = build_view(tree, terms, depth, edge_filter)

    shown = {id(node) for node in view.expanded_nodes()}
    problems = [p for p in all_problems if p.kind == "error" or id(p.node) in shown]

    if not view.matched:
        status = STATUS_NO_MATCH
    elif tree.error is not None or is_fatal(problems):
        status = STATUS_PROBLEMS
    else:
        status = STATUS_OK

    logging.info(f"ls done: status={status}, {len(problems)} problems in view.")
    return LsResult(tree=tree, view=view, problems=problems, status=status, error=tree.error)


def render(result: LsResult, options: LsOptions) -> str:
    if options.json:
        return render_json(result.tree, result.view, result.problems, options.long)
    if options.parseable:
        return render_parseable(result.tree, result.view, options.long)
    return render_human(result.tree, result.view, color=options.color, long=options.long)


def run_ls(options: Optional[LsOptions] = None, terms: Sequence[str] = (),
           output: Callable[[str], None] = print) -> int:
    """
    Prints the listing, then fails the way npm does: the root parse error
    first, ELSPROBLEMS otherwise. A filter that matched nothing returns 1.
    """
    options = options or LsOptions()
    result = ls(options, terms)

    text = render(result, options)
    if text:
        output(text)

    if result.error is not None:
        raise result.error

    if result.status == STATUS_PROBLEMS:
        raise LsProblemsError(result.messages)

    if result.status == STATUS_NO_MATCH:
        return 1

    return 0
