import asyncio
import logging
from typing import Optional

from rich.markup import escape
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Footer, Header, Label, LoadingIndicator, Markdown, Tree

from tronco.__version__ import __version__
from tronco.config import LsOptions
from tronco.core.filter import ViewNode
from tronco.core.ls import STATUS_NO_MATCH, LsResult, ls
from tronco.core.manifest import manifest_field

# Log Configuration
logging.basicConfig(
    filename="debug.log",
    level=logging.DEBUG,
    filemode="w",
    format="%(asctime)s - %(levelname)s - %(message)s",
)


class PackageScreen(ModalScreen):
    """Modal with everything known about one package and its problems."""

    DEFAULT_CSS = """
    PackageScreen {
        align: center middle;
        background: rgba(0, 0, 0, 0.8);
    }
    #dialog {
        padding: 0 1;
        width: 85%;
        height: 85%;
        border: heavy $primary;
        background: $surface;
        layout: vertical;
    }
    #dialog.has-problems { border: heavy $error; }
    #title {
        text-align: center;
        text-style: bold;
        background: $primary;
        color: white;
        width: 100%;
        padding: 1;
    }
    #dialog.has-problems #title { background: $error; }
    #content-scroll {
        height: 1fr;
        margin: 1 0;
        overflow-y: auto;
        scrollbar-gutter: stable;
    }
    #close-btn {
        width: 100%;
        dock: bottom;
    }
    """

    def __init__(self, item: ViewNode) -> None:
        super().__init__()
        self.item = item

    def compose(self) -> ComposeResult:
        node = self.item.node
        title = f"UNMET {node.name}" if node.missing else node.pkgid
        yield Vertical(
            Label(escape(title), id="title"),
            VerticalScroll(
                Markdown(self._build_report()),
                id="content-scroll"
            ),
            Button("Close (Esc)", variant="primary", id="close-btn"),
            id="dialog",
            classes="has-problems" if node.problems else "",
        )

    def _build_report(self) -> str:
        node = self.item.node
        edge = self.item.edge
        md_output = []

        description = manifest_field(node.package, "description")
        if description:
            md_output.append(f"**{description}**\n")

        if edge is not None:
            md_output.append(f"- **Required as**: `{edge.spec or '*'}` ({edge.type})")
        if node.path:
            md_output.append(f"- **Path**: `{node.path}`")
        if node.resolved:
            md_output.append(f"- **Resolved**: `{node.resolved}`")
        if node.is_link and node.target is not None:
            md_output.append(f"- **Links to**: `{node.target.path}`")
        if node.flags:
            md_output.append(f"- **Flags**: {', '.join(sorted(node.flags))}")

        homepage = manifest_field(node.package, "homepage")
        if homepage:
            md_output.append(f"- **Homepage**: [{homepage}]({homepage})")

        md_output.append("\n### Problems\n")
        if node.problems:
            for problem in node.problems:
                md_output.append(f"- {problem}")
        else:
            md_output.append("_No problems found for this package._")

        return "\n".join(md_output)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss()

    def key_escape(self) -> None:
        self.dismiss()


class TroncoApp(App):
    TITLE = "Tronco"
    SUB_TITLE = f"v{__version__}"

    DEFAULT_CSS = """
    Screen { layout: vertical; }

    #info-bar {
        height: 3;
        dock: top;
        background: $surface;
        border-bottom: solid $primary;
        align: left middle;
        padding: 0 1;
    }

    .info-label {
        width: auto;
        height: 1;
        padding: 0 2;
        color: $text;
    }

    #tree-container {
        height: 1fr;
        border: none;
        margin: 0 1;
    }
    Tree { padding: 1; background: $surface; }

    #loading-container { height: 100%; align: center middle; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("l", "expand_node", "Expand"),
        Binding("h", "collapse_node", "Collapse"),
        Binding("space", "toggle_node", "Toggle"),
        Binding("enter", "select_cursor", "Details"),
        Binding("p", "toggle_filter", "Problems Only"),
    ]

    show_only_problems: bool = False
    total_pkgs: int = 0
    problem_pkgs: int = 0
    loader_name: str = "..."

    def __init__(self, options: Optional[LsOptions] = None) -> None:
        super().__init__()
        self.options = options or LsOptions(all=True)
        self.result: Optional[LsResult] = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="info-bar"):
            yield Label(f"[b]Source:[/b] [cyan]{self.loader_name}[/]", id="lbl-context", classes="info-label")
            yield Label(f"[b]Total:[/b] [blue]{self.total_pkgs}[/]", id="lbl-total", classes="info-label")
            yield Label(f"[b]Problems:[/b] [red]{self.problem_pkgs}[/]", id="lbl-problems", classes="info-label")
            yield Label("[b]OK:[/b] [green]0[/]", id="lbl-ok", classes="info-label")

        with Container(id="main-area"):
            with Container(id="loading-container"):
                yield LoadingIndicator()
                yield Label("Initializing Tronco...", id="status-label")

            with Container(id="tree-container"):
                yield Tree("Root", id="dep-tree")

        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#tree-container").display = False
        self.load_project()

    # --- ACTIONS ---

    def action_cursor_down(self) -> None:
        self.query_one("#dep-tree").action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one("#dep-tree").action_cursor_up()

    def action_expand_node(self) -> None:
        tree = self.query_one("#dep-tree")
        if tree.cursor_node:
            tree.cursor_node.expand()

    def action_collapse_node(self) -> None:
        tree = self.query_one("#dep-tree")
        node = tree.cursor_node
        if node:
            if node.is_expanded:
                node.collapse()
            elif node.parent:
                tree.select_node(node.parent)
                node.parent.collapse()

    def action_toggle_node(self) -> None:
        tree = self.query_one("#dep-tree")
        if tree.cursor_node:
            tree.cursor_node.toggle()

    def action_select_cursor(self) -> None:
        self.query_one("#dep-tree").action_select_cursor()

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        item = event.node.data
        if item is None or item.node.is_root:
            return
        self.push_screen(PackageScreen(item))

    def action_toggle_filter(self) -> None:
        self.show_only_problems = not self.show_only_problems

        status = "enabled" if self.show_only_problems else "disabled"
        severity = "warning" if self.show_only_problems else "information"
        msg = "Showing packages with problems only." if self.show_only_problems else "Showing all packages."

        self.notify(f"Filter {status}: {msg}", severity=severity)

        if self.result is not None:
            self.render_tree(self.result)

    # --- LOGIC ---

    def _has_problem_descendant(self, item: ViewNode) -> bool:
        if item.node.problems:
            return True
        for child in item.children:
            if self._has_problem_descendant(child):
                return True
        return False

    def update_status(self, msg: str) -> None:
        self.query_one("#status-label", Label).update(msg)

    def update_dashboard_ui(self) -> None:
        ok_count = self.total_pkgs - self.problem_pkgs
        self.query_one("#lbl-context", Label).update(f"[b]Source:[/b] [cyan]{self.loader_name}[/]")
        self.query_one("#lbl-total", Label).update(f"[b]Total:[/b] [blue]{self.total_pkgs}[/]")
        self.query_one("#lbl-problems", Label).update(f"[b]Problems:[/b] [red]{self.problem_pkgs}[/]")
        self.query_one("#lbl-ok", Label).update(f"[b]OK:[/b] [green]{ok_count}[/]")

    def show_error(self, message: str) -> None:
        self.query_one("#status-label", Label).update(f"[bold red]Fatal Error:[/]\n{escape(message)}")
        self.query_one("LoadingIndicator").display = False

    @work(thread=False)
    async def load_project(self) -> None:
        try:
            logging.info("Worker started.")
            self.update_status(f"Reading {self.options.prefix}...")

            result = await asyncio.to_thread(ls, self.options)
            self.result = result

            packages = [n for n in result.view.expanded_nodes() if not n.is_root]
            self.loader_name = result.tree.loader
            self.total_pkgs = len(packages)
            self.problem_pkgs = len([n for n in packages if n.problems])
            logging.info(f"Loader: {self.loader_name}, {self.total_pkgs} packages, status {result.status}")

            self.update_dashboard_ui()
            self.update_status("Rendering tree...")
            self.render_tree(result)

            if result.error is not None:
                self.notify(f"{result.error.code}: {result.error}", severity="error")
            elif result.status == STATUS_NO_MATCH:
                self.notify("No package matched the filter.", severity="warning")

        except Exception as e:
            logging.exception("Fatal error in worker:")
            self.show_error(str(e))

    def render_tree(self, result: LsResult) -> None:
        tree = self.query_one("#dep-tree")
        tree.clear()
        root = result.view.root
        tree.root.data = root
        tree.root.label = f"📂 {escape(root.node.pkgid if root.node.has_manifest else root.node.path)}"
        tree.root.expand()

        def add_nodes(tree_node, item: ViewNode):
            for child in item.children:
                if self.show_only_problems and not self._has_problem_descendant(child):
                    continue

                node = child.node
                safe_name = escape(node.name)
                safe_ver = escape(node.version)

                child_count = len(child.children)
                count_suffix = f" [dim]↳[/] {child_count}" if child_count > 0 else ""

                if node.missing:
                    kind = "OPTIONAL " if node.optional else ""
                    label = f"[yellow](?) UNMET {kind}{safe_name}[/] [dim]{escape(child.edge.spec)}[/]"
                elif child.deduped:
                    label = f"[dim](=) {safe_name} {safe_ver} deduped[/]"
                elif node.invalid:
                    label = f"[bold red](!) {safe_name}[/] [dim]{safe_ver}[/] [red](invalid)[/]{count_suffix}"
                elif node.extraneous:
                    label = f"[magenta](+) {safe_name}[/] [dim]{safe_ver}[/] [magenta](extraneous)[/]{count_suffix}"
                elif node.is_link:
                    label = f"[blue](-) {safe_name} [dim]{safe_ver}[/] -> {escape(node.real.path)}[/]{count_suffix}"
                else:
                    label = f"[green](•) {safe_name} [dim]{safe_ver}[/]{count_suffix}"

                new_node = tree_node.add(label, expand=child.depth == 0, data=child)
                if self.show_only_problems:
                    new_node.expand()

                add_nodes(new_node, child)

        add_nodes(tree.root, root)
        self.query_one("#loading-container").display = False
        self.query_one("#tree-container").display = True
        tree.focus()
