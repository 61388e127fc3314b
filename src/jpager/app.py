"""Terminal application and command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.widgets import Header

from jpager import log
from jpager.config import PagerConfig, load_config, load_history, save_history
from jpager.loader import Source
from jpager.widget import JsonPager

logger = logging.getLogger(__name__)

LINE_DELIMITED_SUFFIXES = (".jsonl", ".ndjson")


def is_line_delimited(path: str | Path) -> bool:
    return str(path).lower().endswith(LINE_DELIMITED_SUFFIXES)


class JsonPagerApp(App):
    """TUI app that wraps the JsonPager widget."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #pager {
        height: 1fr;
    }
    """

    TITLE = "jpager"
    BINDINGS = []
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        source: Source,
        *,
        file_path: str = "",
        line_delimited: bool = False,
        config: PagerConfig | None = None,
        history_path: str | Path | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.source = source
        self.file_path = file_path
        self.line_delimited = line_delimited
        self.config = config or PagerConfig()
        self.history_path = history_path

    def compose(self) -> ComposeResult:
        yield Header()
        # kept as an attribute: the DOM is already gone by on_unmount
        self.pager = JsonPager(self.config, id="pager")
        yield self.pager

    def on_mount(self) -> None:
        pager = self.pager
        pager.set_history(load_history(self.history_path))
        pager.load_document(self.source, line_delimited=self.line_delimited)
        self._update_title()
        pager.focus()
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, self.exit)
        except NotImplementedError as e:
            # no loop signal handlers on this platform
            logger.debug("SIGTERM handler not installed: %s", e)

    def on_unmount(self) -> None:
        pager = self.pager
        if pager.loader is not None:
            pager.loader.cancel()
        save_history(pager.get_history(), self.history_path)

    def _update_title(self) -> None:
        mode = " [lines]" if self.line_delimited else ""
        self.sub_title = (self.file_path or "[stdin]") + mode

    # -- Event handlers ----------------------------------------------------

    def on_json_pager_quit(self, event: JsonPager.Quit) -> None:
        self.exit()

    def on_json_pager_copy_requested(self, event: JsonPager.CopyRequested) -> None:
        self.copy_to_clipboard(event.text)
        self.notify(f"Copied {event.label} ({len(event.text)} chars)", severity="information")

    def on_json_pager_file_open_requested(
        self, event: JsonPager.FileOpenRequested
    ) -> None:
        path = Path(event.file_path).expanduser()
        try:
            with path.open("rb"):
                pass
        except FileNotFoundError:
            self.notify(f"File not found: {event.file_path}", severity="error", timeout=6)
            return
        except OSError as exc:
            self.notify(f"Cannot open: {exc}", severity="error", timeout=6)
            return

        self.file_path = str(path)
        self.line_delimited = is_line_delimited(path)
        self.pager.load_document(path, line_delimited=self.line_delimited)
        self._update_title()
        logger.info("opened %s", path)
        self.notify(f"Opened: {event.file_path}", severity="information")

    def on_json_pager_load_failed(self, event: JsonPager.LoadFailed) -> None:
        self.exit(return_code=1, message=f"jpager: {event.error}")


def _reattach_terminal() -> None:
    """Point fd 0 at the controlling terminal after the document came from a pipe."""
    fd = os.open("/dev/tty", os.O_RDONLY)
    try:
        os.dup2(fd, 0)
    finally:
        os.close(fd)


def _fail(message: str) -> None:
    print(f"jpager: {message}", file=sys.stderr)
    sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="jpager",
        description="Interactive terminal pager for JSON",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="",
        help="JSON file to view (default or '-': standard input)",
    )
    parser.add_argument(
        "-l", "--lines",
        action="store_true",
        default=False,
        help="treat input as newline-delimited JSON records "
        "(implied by .jsonl / .ndjson)",
    )
    parser.add_argument("--scrolloff", type=int, help="rows kept around the cursor")
    parser.add_argument(
        "--collapse-depth",
        type=int,
        help="start with containers at this depth or deeper collapsed",
    )
    parser.add_argument(
        "--json-mode",
        action="store_true",
        default=False,
        help="start in JSON display mode (quoted keys, commas)",
    )
    parser.add_argument("--config", help="config file (default: user config dir)")
    parser.add_argument("--log-file", help=f"write a log file (or ${log.LOG_FILE_ENV})")
    parser.add_argument("--log-level", help=f"log level (or ${log.LOG_LEVEL_ENV})")
    args = parser.parse_args(argv)

    try:
        log.configure(args.log_level, args.log_file)
    except OSError as exc:
        _fail(f"cannot open log file: {exc}")
    config = load_config(args.config).with_overrides(
        scrolloff=args.scrolloff,
        collapse_depth=args.collapse_depth,
        data_mode=False if args.json_mode else None,
    )
    logger.info("config %s: %s", config.source or "defaults", config)

    file_path: str = args.file
    source: Source
    if not file_path or file_path == "-":
        if sys.stdin.isatty():
            _fail("no input: give a file name or pipe a document")
        # the loader reads the pipe through its own descriptor while fd 0
        # goes back to the terminal
        source = os.fdopen(os.dup(sys.stdin.fileno()), "rb")
        try:
            _reattach_terminal()
        except OSError as exc:
            _fail(f"cannot open terminal: {exc}")
        file_path = ""
        line_delimited = args.lines
    else:
        path = Path(file_path)
        try:
            with path.open("rb"):
                pass
        except OSError as exc:
            _fail(str(exc))
        source = path
        line_delimited = args.lines or is_line_delimited(path)

    app = JsonPagerApp(
        source,
        file_path=file_path,
        line_delimited=line_delimited,
        config=config,
    )
    app.run()
    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
