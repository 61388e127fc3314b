"""Modal JSON pager widget."""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widget import Widget

from jpager._search import SearchMixin
from jpager.config import PagerConfig
from jpager.controller import DocumentController
from jpager.keymap import Action, Command, InputMode, InputStateMachine
from jpager.loader import DocumentLoader, Source
from jpager.render import DisplayOptions, fit_width, format_line, text_width, to_text
from jpager.search import SearchEngine, SearchScope
from jpager.tree import ValueTree
from jpager.viewport import Viewport

POLL_INTERVAL = 1 / 30
DELTAS_PER_TICK = 2000
HSCROLL_STEP = 4


def loading_label(loader: DocumentLoader) -> str:
    # a pipe has no known size, so show how much has arrived
    if loader.reading and loader.total_bytes is None:
        return f"reading {loader.bytes_read // 1024} KiB"
    return f"loading {int(loader.progress() * 100)}%"


class JsonPager(SearchMixin, Widget, can_focus=True):
    """A read-only, collapsible JSON viewer with vim-style keys.

    Supported commands:
      NORMAL: j k  gg G  J K H  Enter/Space  za zo zc zO zC zR zM
              ^E ^Y ^D ^U ^F ^B  zt zz zb  h l zh zl 0  / ? n N
              yy yp yk  m  ^G  q
      COMMAND: :q  :e <file>  :<n>  :$  :set mode=data|json  :set scope=keys|values|all
      MOUSE: click a row to put the cursor on it
    """

    DEFAULT_CSS = """
    JsonPager {
        height: 1fr;
        background: $surface;
        padding: 0 1;
    }
    """

    # -- Messages ----------------------------------------------------------

    @dataclass
    class Quit(Message):
        pass

    @dataclass
    class CopyRequested(Message):
        text: str
        label: str  # what was copied: "value", "path" or "key"

    @dataclass
    class FileOpenRequested(Message):
        file_path: str

    @dataclass
    class LoadFailed(Message):
        error: str

    # -- Init --------------------------------------------------------------

    def __init__(
        self,
        config: PagerConfig | None = None,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.config = config or PagerConfig()
        self.options = DisplayOptions(
            data_mode=self.config.data_mode, indent=self.config.indent
        )
        self.viewport = Viewport(24, 80, scrolloff=self.config.scrolloff)
        self.keys = InputStateMachine(history_size=self.config.history_size)
        self.search = SearchEngine(self.config.search_scope)
        self.status_msg: str = ""
        self.document_name: str = ""
        self.loader: DocumentLoader | None = None
        self._poll_timer = None
        tree = ValueTree()
        tree.finish()
        self.show_tree(tree)

    # -- Documents ---------------------------------------------------------

    def show_tree(self, tree: ValueTree, name: str = "") -> None:
        """Display an already built (or still growing) tree."""
        self.value_tree = tree
        self.document_name = name
        self.viewport.top = 0
        self.viewport.left = 0
        self.controller = DocumentController(tree, self.viewport, self.options)
        self.search.clear_matches()

    def load_document(
        self, source: Source, *, line_delimited: bool = False
    ) -> DocumentLoader:
        """Start parsing ``source`` in the background, replacing the current document."""
        self._stop_loading()
        loader = DocumentLoader(
            source,
            line_delimited=line_delimited,
            collapse_depth=self.config.collapse_depth,
        )
        self.loader = loader
        self.show_tree(loader.tree, loader.name)
        self.status_msg = ""
        loader.start()
        if self.is_mounted:
            self._poll_timer = self.set_interval(POLL_INTERVAL, self.poll_loader)
        return loader

    def _stop_loading(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.stop()
            self._poll_timer = None
        if self.loader is not None and not self.loader.done:
            self.loader.cancel()

    def poll_loader(self) -> None:
        """Graft pending parse results.  Runs on a timer while loading."""
        loader = self.loader
        if loader is None or loader.cancelled:
            return
        grafted = loader.drain(DELTAS_PER_TICK)
        if grafted:
            self.controller.sync()
        if loader.done:
            if self._poll_timer is not None:
                self._poll_timer.stop()
                self._poll_timer = None
            self._finish_load(loader)
        if grafted or loader.done:
            self.refresh()

    def _finish_load(self, loader: DocumentLoader) -> None:
        self.controller.sync()
        if loader.error is not None:
            if self.value_tree.has_content():
                self.status_msg = f"Parse error: {loader.error}"
            else:
                self.post_message(self.LoadFailed(error=f"{loader.name}: {loader.error}"))
            return
        if not self.value_tree.has_content():
            self.status_msg = "(empty document)"
        self._refresh_search()

    # =====================================================================
    # Rendering
    # =====================================================================

    _MODE_STYLE = {
        InputMode.NORMAL: "bold white on dark_green",
        InputMode.COMMAND: "bold white on dark_red",
        InputMode.SEARCH: "bold white on dark_magenta",
    }

    def render(self) -> Text:
        width = self.content_region.width
        height = self.content_region.height
        if height < 3 or width < 10:
            return Text("(too small)")

        content_height = height - 2
        controller = self.controller
        viewport = self.viewport
        if (viewport.height, viewport.width) != (content_height, width):
            controller.resize(content_height, width)

        tree = self.value_tree
        options = self.options
        cursor_line = controller.cursor.line
        result = Text(no_wrap=True, overflow="crop")
        rows_used = 0
        for line in controller.visible_lines():
            formatted = format_line(tree, line, options)
            result.append_text(
                to_text(
                    formatted,
                    left=viewport.left,
                    width=width,
                    cursor=line.index == cursor_line,
                    highlights=self._line_highlights(line, formatted),
                )
            )
            result.append("\n")
            rows_used += 1

        while rows_used < content_height:
            result.append("~\n", style="dim blue")
            rows_used += 1

        # status bar
        mode = self.keys.mode
        mode_label = f" {mode.name} "
        result.append(mode_label, style=self._MODE_STYLE[mode])
        display_label = " DATA " if options.data_mode else " JSON "
        result.append(display_label, style="bold white on grey37")

        pending = self.keys.pending
        if pending:
            result.append(f"  {pending}", style="bold yellow")

        total = controller.total()
        pos = f" Ln {cursor_line + 1 if total else 0}/{total} "
        loading = ""
        if self.loader is not None and not self.loader.done:
            loading = f" {loading_label(self.loader)} "
        message = self.status_msg
        message_style = ""
        if not message and total:
            message = controller.focused_path_text() or ""
            message_style = "dim"
        used = len(mode_label) + len(display_label) + len(pos) + len(loading)
        used += len(pending) + 2 if pending else 0
        room = max(0, width - used - 2)
        if text_width(message) > room:
            message = fit_width(message, room - 1) + "…" if room else ""
        result.append(f"  {message}", style=message_style)
        spacer = room - text_width(message)
        if spacer > 0:
            result.append(" " * spacer)
        if loading:
            result.append(loading, style="bold cyan")
        result.append(pos, style="bold")

        if mode is InputMode.COMMAND:
            result.append(f"\n:{self.keys.buffer}", style="bold yellow")
            result.append(" ", style="reverse")
        elif mode is InputMode.SEARCH:
            result.append(f"\n{self.keys.prompt}{self.keys.buffer}", style="bold magenta")
            result.append(" ", style="reverse")
        else:
            result.append("\n")

        return result

    # =====================================================================
    # Key handling
    # =====================================================================

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self.handle_key(event)
        self.refresh()

    def on_click(self, event: events.Click) -> None:
        content_offset = event.get_content_offset(self)
        if content_offset is not None and self.click_row(content_offset.y):
            self.refresh()

    def click_row(self, row: int) -> bool:
        """Move the cursor to the document line shown on content ``row``."""
        line = self.viewport.line_at_row(row, self.controller.total())
        if line is None:
            return False
        self.controller.move_to_line(line)
        self.status_msg = ""
        return True

    def handle_key(self, event) -> None:
        command = self.keys.feed(event.key, event.character)
        if command is not None:
            self._dispatch(command)

    def _dispatch(self, command: Command) -> None:
        action = command.action
        n = command.repeat()
        controller = self.controller
        self.status_msg = ""

        # movement
        if action is Action.MOVE_DOWN:
            controller.move(n)
        elif action is Action.MOVE_UP:
            controller.move(-n)
        elif action is Action.MOVE_TOP:
            if command.count is not None:
                controller.move_to_line(command.count - 1)
            else:
                controller.move_to_top()
        elif action is Action.MOVE_BOTTOM:
            if command.count is not None:
                controller.move_to_line(command.count - 1)
            else:
                controller.move_to_bottom()
        elif action is Action.NEXT_SIBLING:
            for _ in range(n):
                if not controller.move_to_sibling(1):
                    break
        elif action is Action.PREV_SIBLING:
            for _ in range(n):
                if not controller.move_to_sibling(-1):
                    break
        elif action is Action.PARENT:
            for _ in range(n):
                if not controller.move_to_parent():
                    break

        # collapse
        elif action is Action.TOGGLE:
            controller.toggle_focused_collapse()
        elif action is Action.EXPAND:
            controller.expand_focused()
        elif action is Action.COLLAPSE:
            controller.collapse_focused()
        elif action is Action.EXPAND_RECURSIVE:
            controller.expand_focused_recursive()
        elif action is Action.COLLAPSE_RECURSIVE:
            controller.collapse_focused_recursive()
        elif action is Action.EXPAND_ALL:
            if not controller.expand_all() and self.value_tree.growing:
                self.status_msg = "still loading; try again when done"
        elif action is Action.COLLAPSE_ALL:
            max_depth = command.count if command.count is not None else 1
            if not controller.collapse_all(max_depth) and self.value_tree.growing:
                self.status_msg = "still loading; try again when done"

        # scrolling
        elif action is Action.SCROLL_DOWN:
            controller.scroll_viewport(n)
        elif action is Action.SCROLL_UP:
            controller.scroll_viewport(-n)
        elif action is Action.HALF_PAGE_DOWN:
            controller.jump(controller.half_page())
        elif action is Action.HALF_PAGE_UP:
            controller.jump(-controller.half_page())
        elif action is Action.PAGE_DOWN:
            controller.jump(controller.full_page() * n)
        elif action is Action.PAGE_UP:
            controller.jump(-controller.full_page() * n)
        elif action is Action.CURSOR_TO_TOP:
            controller.place_cursor("top")
        elif action is Action.CURSOR_TO_CENTER:
            controller.place_cursor("center")
        elif action is Action.CURSOR_TO_BOTTOM:
            controller.place_cursor("bottom")
        elif action is Action.SCROLL_LEFT:
            controller.scroll_horizontal(-HSCROLL_STEP * n)
        elif action is Action.SCROLL_RIGHT:
            controller.scroll_horizontal(HSCROLL_STEP * n)
        elif action is Action.SCROLL_HOME:
            controller.reset_horizontal()

        # search
        elif action is Action.SEARCH_NEXT:
            for _ in range(n):
                self._goto_next_match()
        elif action is Action.SEARCH_PREV:
            for _ in range(n):
                self._goto_next_match(reverse=True)
        elif action is Action.SEARCH_FORWARD:
            self._execute_search(command.argument, forward=True)
        elif action is Action.SEARCH_BACKWARD:
            self._execute_search(command.argument, forward=False)

        # clipboard
        elif action is Action.YANK_VALUE:
            self._yank(controller.focused_value_text(), "value")
        elif action is Action.YANK_PATH:
            self._yank(controller.focused_path_text(), "path")
        elif action is Action.YANK_KEY:
            self._yank(controller.focused_key_text(), "key")

        # misc
        elif action is Action.TOGGLE_MODE:
            self._set_data_mode(not self.options.data_mode)
        elif action is Action.SHOW_INFO:
            self._show_info()
        elif action is Action.QUIT:
            self.post_message(self.Quit())
        elif action is Action.EXECUTE:
            self._exec_command(command.argument)
        # START_* and CANCEL_PROMPT only clear the status line

    def _yank(self, text: str | None, label: str) -> None:
        if text is None:
            self.status_msg = f"no {label} to copy"
            return
        self.post_message(self.CopyRequested(text=text, label=label))

    def _set_data_mode(self, data_mode: bool) -> None:
        self.options.data_mode = data_mode
        self.viewport.reset_horizontal()
        self.status_msg = "data mode" if data_mode else "json mode"

    def _show_info(self) -> None:
        total = self.controller.total()
        line = self.controller.cursor.line + 1 if total else 0
        pct = line * 100 // total if total else 0
        name = self.document_name or "[no document]"
        self.status_msg = f'"{name}" line {line} of {total} --{pct}%--'

    # -- COMMAND -----------------------------------------------------------

    def _exec_command(self, cmd: str) -> None:
        stripped = cmd.strip()
        if not stripped:
            return

        # :$ → last line, :<n> → line n
        if stripped == "$":
            self.controller.move_to_bottom()
            return
        if stripped.isdigit():
            self.controller.move_to_line(int(stripped) - 1)
            return

        parts = stripped.split(None, 1)
        verb = parts[0]
        arg = parts[1].strip() if len(parts) > 1 else ""

        if verb in ("q", "q!", "quit"):
            self.post_message(self.Quit())
        elif verb in ("e", "edit"):
            if not arg:
                self.status_msg = "Usage: :e <file>"
            else:
                self.post_message(self.FileOpenRequested(file_path=arg))
        elif verb == "set":
            self._exec_set(arg)
        else:
            self.status_msg = f"unknown command: :{stripped}"

    def _exec_set(self, arg: str) -> None:
        name, _, value = arg.partition("=")
        name, value = name.strip(), value.strip()
        if name == "mode" and value in ("data", "json"):
            self._set_data_mode(value == "data")
        elif name == "scope":
            try:
                self.search.scope = SearchScope(value)
            except ValueError:
                self.status_msg = f"unknown scope: {value}"
                return
            self._refresh_search()
            if not self.status_msg:
                self.status_msg = f"search scope: {value}"
        else:
            self.status_msg = f"unknown option: {arg}"
