#!/usr/bin/env python3
"""CodeFlow Workspace — Textual TUI.

Explorer (Space picker + Vault/Log tree) on the left, the active Log in a
TextArea in the middle, run output and an event log on the right. Every
widget event is turned into a direct call on one of the controllers:

    SessionController       open / save / run / generate / delete
    InlineEditController    create and rename from the explorer
    CommandPalette          Ctrl+Shift+P
    KeyDispatcher           global shortcuts
"""

from __future__ import annotations

from datetime import datetime

from rich.text import Text
from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Footer,
    Header,
    Input,
    OptionList,
    RichLog,
    Select,
    Static,
    TextArea,
    Tree,
)
from textual.widgets.option_list import Option
from textual.widgets.text_area import LanguageDoesNotExist

from .api import WorkspaceClient
from .commands import CommandPalette, GeneratePrompt, build_commands
from .config import Settings
from .inline import InlineEditController
from .keymap import KeyDispatcher
from .languages import LANGUAGE_LABELS, get_editor_syntax, get_language_label
from .notifications import Notification, NotificationQueue
from .session import DocumentState, SessionController
from .tree import WorkspaceTreeStore


# ── Colors ──────────────────────────────────────────────────────────────

class Colors:
    ORANGE = "#ff9800"
    GREEN = "#00c853"
    RED = "#f44336"
    CYAN = "#00bcd4"
    DIM = "#555555"


SEVERITY = {"success": "information", "info": "information", "error": "error"}
TOAST_STYLE = {"success": Colors.GREEN, "info": Colors.CYAN, "error": Colors.RED}


def render_run_result(result) -> Text:
    """Output panel body for one RunResult (or the empty hint)."""
    text = Text()
    if result is None:
        text.append("Run code to see output here\n", style=Colors.DIM)
        return text
    if result.stdout:
        text.append(result.stdout)
        if not result.stdout.endswith("\n"):
            text.append("\n")
    if result.stderr:
        text.append(result.stderr, style=Colors.RED)
        if not result.stderr.endswith("\n"):
            text.append("\n")
    if not result.stdout and not result.stderr and result.output:
        text.append(result.output + "\n")
    style = Colors.RED if result.failed else Colors.GREEN
    text.append(f"\nexit code {result.code}\n", style=f"bold {style}")
    return text


# ── Command Palette ─────────────────────────────────────────────────────

class PaletteScreen(ModalScreen[None]):
    """Filter box over the command list. Closing happens after every run."""

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("down", "move(1)", "Down", show=False, priority=True),
        Binding("up", "move(-1)", "Up", show=False, priority=True),
    ]

    def __init__(self, palette: CommandPalette):
        super().__init__()
        self.palette = palette

    def compose(self) -> ComposeResult:
        with Vertical(id="palette-box"):
            yield Input(placeholder="Type a command...", id="palette-filter")
            yield OptionList(id="palette-list")

    def on_mount(self) -> None:
        self._render_matches()
        self.query_one("#palette-filter", Input).focus()

    def _render_matches(self) -> None:
        option_list = self.query_one("#palette-list", OptionList)
        option_list.clear_options()
        matches = self.palette.matches
        if not matches:
            option_list.add_option(Option("No commands found", disabled=True))
            return
        for cmd in matches:
            option_list.add_option(Option(f"{cmd.label}\n[dim]{cmd.hint}[/dim]", id=cmd.id))
        option_list.highlighted = self.palette.selected

    @on(Input.Changed, "#palette-filter")
    def _filter_changed(self, event: Input.Changed) -> None:
        self.palette.set_filter(event.value)
        self._render_matches()

    def action_move(self, step: int) -> None:
        if step > 0:
            self.palette.move_down()
        else:
            self.palette.move_up()
        if self.palette.matches:
            self.query_one("#palette-list", OptionList).highlighted = self.palette.selected

    @on(Input.Submitted, "#palette-filter")
    async def _submitted(self) -> None:
        await self._execute(None)

    @on(OptionList.OptionSelected, "#palette-list")
    async def _clicked(self, event: OptionList.OptionSelected) -> None:
        await self._execute(event.option_index)

    async def _execute(self, index) -> None:
        self.dismiss()
        await self.palette.execute(index)
        self.app.sync_view()

    def action_close(self) -> None:
        self.palette.close()
        self.dismiss()


# ── CSS ─────────────────────────────────────────────────────────────────

APP_CSS = """
Screen {
    background: #0a0a0a;
}

#workspace {
    height: 1fr;
}

#explorer {
    width: 34;
    border-right: solid #333333;
}

#space-select {
    margin: 0 0 1 0;
}

#explorer-tree {
    height: 1fr;
    background: #0a0a0a;
}

#inline-input, #generate-input, #generate-language {
    display: none;
}

#inline-error {
    color: #f44336;
    height: auto;
}

#editor-pane {
    width: 1fr;
}

#breadcrumb, #status-line {
    height: 1;
    padding: 0 1;
    background: #111111;
    color: #888888;
}

#editor {
    height: 1fr;
}

#right-pane {
    width: 48;
    border-left: solid #333333;
}

#output {
    height: 2fr;
    background: #0a0a0a;
}

#event-log {
    height: 1fr;
    border-top: solid #333333;
    background: #0a0a0a;
}

PaletteScreen {
    align: center top;
}

#palette-box {
    width: 70;
    height: auto;
    max-height: 24;
    margin-top: 3;
    background: #111111;
    border: tall #5B8CFF;
}

#palette-list {
    height: auto;
    max-height: 18;
}
"""


# ── Main App ────────────────────────────────────────────────────────────

class CodeFlowApp(App):
    """CodeFlow Workspace."""

    TITLE = "CODEFLOW"
    SUB_TITLE = "Workspace"
    CSS = APP_CSS
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("ctrl+shift+p", "shortcut('ctrl+shift+p')", "Commands", priority=True),
        Binding("ctrl+p", "shortcut('ctrl+shift+p')", "Commands", show=False, priority=True),
        Binding("ctrl+s", "shortcut('ctrl+s')", "Save", priority=True),
        Binding("ctrl+r", "shortcut('ctrl+r')", "Run", priority=True),
        Binding("g", "shortcut('g')", "Generate"),
        Binding("delete", "shortcut('delete')", "Delete"),
        Binding("f2", "shortcut('f2')", "Rename"),
        Binding("a", "shortcut('a')", "New Vault", show=False),
        Binding("n", "shortcut('n')", "New Log", show=False),
        Binding("escape", "cancel", "Cancel", show=False),
        Binding("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, settings: Settings | None = None, client: WorkspaceClient | None = None):
        super().__init__()
        self.settings = settings or Settings.from_env()
        self.client = client or WorkspaceClient.from_settings(self.settings)
        self.notifications = NotificationQueue(lifetime=self.settings.toast_seconds)
        self.store = WorkspaceTreeStore(self.client, self.notifications)
        self.session = SessionController(
            self.client, self.store, self.notifications,
            save_indicator_seconds=self.settings.save_indicator_seconds,
        )
        self.inline = InlineEditController(self.store, self.notifications, self.session)
        self.prompt = GeneratePrompt(self.session)
        self.registry = build_commands(self.session, self.store, self.inline, self.prompt, self.notifications)
        self.palette = CommandPalette(self.registry, self.notifications)
        self.dispatcher = KeyDispatcher(self.session, self.inline, self.palette, self.prompt)

        self._rendered_spaces = None
        self._rendered_tree = None
        self._rendered_result = None
        self._shown_generation = -1
        self._shown_buffer = ""

        self.notifications.subscribe(self._on_notification)

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="workspace"):
            with Vertical(id="explorer"):
                yield Select([], prompt="Space", id="space-select", allow_blank=True)
                yield Tree("Explorer", id="explorer-tree")
                yield Input(id="inline-input")
                yield Static("", id="inline-error")
            with Vertical(id="editor-pane"):
                yield Static("Select a log", id="breadcrumb")
                yield Select(
                    [(label, name) for name, label in LANGUAGE_LABELS.items()],
                    prompt="Language of the open log", id="generate-language", allow_blank=True,
                )
                yield Input(placeholder="Describe what code you want to generate...", id="generate-input")
                yield TextArea("", id="editor", show_line_numbers=True, theme="monokai")
                yield Static("", id="status-line")
            with Vertical(id="right-pane"):
                yield RichLog(id="output", wrap=True, markup=False)
                yield RichLog(id="event-log", highlight=True, markup=True)
        yield Footer()

    def on_mount(self) -> None:
        tree = self.query_one("#explorer-tree", Tree)
        tree.show_root = False
        tree.root.expand()
        self._log(f"[bold {Colors.ORANGE}]CodeFlow started[/]  [{Colors.DIM}]{self.settings.api_url}[/]")
        self._log(f"[{Colors.DIM}]Ctrl+Shift+P for commands, Ctrl+Q to quit[/]")
        self.set_interval(1, self._tick)
        self._load_spaces()

    async def on_unmount(self) -> None:
        await self.client.aclose()

    def _log(self, msg: str) -> None:
        """Write a timestamped line to the event log."""
        ts = datetime.now().strftime("%H:%M:%S")
        self.query_one("#event-log", RichLog).write(f"[{Colors.DIM}]{ts}[/] {msg}")

    def _on_notification(self, note: Notification) -> None:
        self.notify(note.message, severity=SEVERITY[note.kind], timeout=self.notifications.lifetime)
        self._log(f"[{TOAST_STYLE[note.kind]}]{note.message}[/]")

    def _tick(self) -> None:
        self.notifications.expire()
        self._sync_status()

    # ── Workers ─────────────────────────────────────────────────────────

    @work(exclusive=True, group="spaces")
    async def _load_spaces(self) -> None:
        await self.store.load_spaces()
        self.sync_view()

    @work(group="session")
    async def _select_log(self, log_id: str) -> None:
        self._sync_status()
        await self.session.select_log(log_id)
        self.sync_view()

    @work(group="spaces")
    async def _select_space(self, space_id: str) -> None:
        space = next((s for s in self.store.spaces if s.id == space_id), None)
        if space is not None:
            await self.store.select_space(space)
        self.sync_view()

    @work(group="keys")
    async def _dispatch(self, chord: str, typing: bool) -> None:
        await self.dispatcher.dispatch(chord, typing=typing)
        self.sync_view()

    @work(group="inline")
    async def _commit_inline(self) -> None:
        await self.inline.commit()
        self.sync_view()

    @work(group="generate")
    async def _submit_generate(self) -> None:
        await self.prompt.submit()
        self.sync_view()

    # ── View sync ───────────────────────────────────────────────────────

    def sync_view(self) -> None:
        """Bring every widget in line with controller state."""
        self._sync_spaces()
        self._sync_tree()
        self._sync_editor()
        self._sync_output()
        self._sync_overlays()
        self._sync_status()
        if self.palette.is_open and not isinstance(self.screen, PaletteScreen):
            self.push_screen(PaletteScreen(self.palette))

    def _sync_spaces(self) -> None:
        select = self.query_one("#space-select", Select)
        options = [(s.name, s.id) for s in self.store.spaces]
        if options != self._rendered_spaces:
            self._rendered_spaces = options
            select.set_options(options)
        if self.store.selected_space is not None and select.value != self.store.selected_space.id:
            select.value = self.store.selected_space.id

    def _sync_tree(self) -> None:
        if self._rendered_tree is self.store.tree:
            return
        self._rendered_tree = self.store.tree
        tree = self.query_one("#explorer-tree", Tree)
        tree.clear()
        if not self.store.tree:
            tree.root.add_leaf(Text("No Vaults yet. Press A to create one.", style=Colors.DIM))
            return

        def add(parent, nodes):
            for node in nodes:
                if node.is_vault:
                    branch = parent.add(f"📁 {node.name}", data=node, expand=self.store.is_expanded(node.id))
                    if node.children:
                        add(branch, node.children)
                    else:
                        branch.add_leaf(Text("This Vault has no Logs.", style=Colors.DIM))
                else:
                    parent.add_leaf(f"  {node.name}", data=node)

        add(tree.root, self.store.tree)

    def _sync_editor(self) -> None:
        editor = self.query_one("#editor", TextArea)
        session = self.session
        if session.generation != self._shown_generation or session.buffer != self._shown_buffer:
            self._shown_generation = session.generation
            self._shown_buffer = session.buffer
            editor.load_text(session.buffer)
            try:
                editor.language = get_editor_syntax(session.language) if session.document else None
            except LanguageDoesNotExist:
                editor.language = None
        editor.disabled = session.document is None and not session.buffer
        self.query_one("#breadcrumb", Static).update(session.breadcrumb)

    def _sync_output(self) -> None:
        result = self.session.run_result
        if result is self._rendered_result:
            return
        self._rendered_result = result
        output = self.query_one("#output", RichLog)
        output.clear()
        output.write(render_run_result(result))

    def _sync_overlays(self) -> None:
        inline_input = self.query_one("#inline-input", Input)
        error = self.query_one("#inline-error", Static)
        if self.inline.is_open:
            if not inline_input.display:
                inline_input.value = self.inline.draft
                inline_input.placeholder = self.inline.mode.placeholder
                inline_input.display = True
                inline_input.focus()
            error.update(self.inline.error or "")
        else:
            inline_input.display = False
            error.update("")

        generate_input = self.query_one("#generate-input", Input)
        language_select = self.query_one("#generate-language", Select)
        if self.prompt.is_open and not generate_input.display:
            generate_input.value = self.prompt.text
            generate_input.display = True
            language_select.display = True
            generate_input.focus()
        elif not self.prompt.is_open:
            generate_input.display = False
            language_select.display = False

    def _sync_status(self) -> None:
        session = self.session
        parts = [get_language_label(session.language)]
        if session.state is DocumentState.LOADING:
            parts.append("Loading...")
        if session.is_dirty:
            parts.append("● modified")
        if session.is_saving:
            parts.append("Saving...")
        if session.is_running:
            parts.append("Running...")
        if session.is_generating:
            parts.append("Generating...")
        self.query_one("#status-line", Static).update("  ".join(parts))

    # ── Widget events ───────────────────────────────────────────────────

    @on(Select.Changed, "#space-select")
    def _space_changed(self, event: Select.Changed) -> None:
        if not isinstance(event.value, str):
            return
        current = self.store.selected_space
        if current is not None and current.id == event.value:
            return
        self._select_space(event.value)

    @on(Tree.NodeSelected, "#explorer-tree")
    def _node_selected(self, event: Tree.NodeSelected) -> None:
        node = event.node.data
        if node is not None and node.is_log:
            self._select_log(node.id)

    @on(Tree.NodeHighlighted, "#explorer-tree")
    def _node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        node = event.node.data
        self.store.highlight(node.id if node is not None else None)

    @on(Tree.NodeExpanded, "#explorer-tree")
    def _node_expanded(self, event: Tree.NodeExpanded) -> None:
        if event.node.data is not None:
            self.store.expanded.add(event.node.data.id)

    @on(Tree.NodeCollapsed, "#explorer-tree")
    def _node_collapsed(self, event: Tree.NodeCollapsed) -> None:
        if event.node.data is not None:
            self.store.expanded.discard(event.node.data.id)

    @on(TextArea.Changed, "#editor")
    def _editor_changed(self, event: TextArea.Changed) -> None:
        text = event.text_area.text
        self._shown_buffer = text
        self.session.edit(text)
        self._sync_status()

    @on(Input.Changed, "#inline-input")
    def _inline_changed(self, event: Input.Changed) -> None:
        if self.inline.is_open:
            self.inline.set_draft(event.value)

    @on(Input.Submitted, "#inline-input")
    def _inline_submitted(self) -> None:
        self._commit_inline()

    @on(Input.Blurred, "#inline-input")
    def _inline_blurred(self) -> None:
        if self.inline.is_open and not self.inline.submitting:
            self.inline.cancel()
            self._sync_overlays()

    @on(Input.Changed, "#generate-input")
    def _prompt_changed(self, event: Input.Changed) -> None:
        self.prompt.set_text(event.value)

    @on(Select.Changed, "#generate-language")
    def _prompt_language_changed(self, event: Select.Changed) -> None:
        self.prompt.set_language(event.value if isinstance(event.value, str) else None)

    @on(Input.Submitted, "#generate-input")
    def _prompt_submitted(self) -> None:
        self._submit_generate()

    # ── Actions ─────────────────────────────────────────────────────────

    def action_shortcut(self, chord: str) -> None:
        typing = isinstance(self.focused, (Input, TextArea))
        self._dispatch(chord, typing)

    def action_cancel(self) -> None:
        if self.inline.is_open:
            self.inline.cancel()
        if self.prompt.is_open:
            self.prompt.cancel()
        self._sync_overlays()
