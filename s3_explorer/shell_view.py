from __future__ import annotations
"""Interactive text view for browsing a bucket."""
import cmd
import logging
import shlex
import threading
from typing import Callable

from .models import BrowserEntry, FetchOutcome
from .paths import normalize_prefix
from .presenter import ExplorerPresenter
from .ui_utils import format_entry, format_location


LOGGER = logging.getLogger(__name__)

INDENT = "    "


class ExplorerShell(cmd.Cmd):
    """Line-oriented front end driving an :class:`ExplorerPresenter`."""

    intro = "Type 'help' for a list of commands."

    def __init__(self, presenter: ExplorerPresenter, *, timeout: float | None = None, **kwargs):
        super().__init__(**kwargs)
        self._presenter = presenter
        self._timeout = timeout
        self._update_prompt()

    def emptyline(self) -> bool:
        return False

    def do_pwd(self, arg: str) -> None:
        """pwd: show the current folder."""
        self._print(format_location(self._presenter.current_prefix))

    def do_ls(self, arg: str) -> None:
        """ls: list the current folder, including expanded sub-folders."""
        for prefix in self._presenter.pending_fetches():
            self._wait(lambda **cb: self._presenter.refresh(prefix=prefix, **cb), quiet=True)
        self._print_listing(self._presenter.current_prefix, depth=0)

    def do_cd(self, arg: str) -> None:
        """cd <folder> | cd .. | cd /: change the current folder."""
        target = arg.strip()
        if target in ("", "/"):
            self._wait(lambda **cb: self._presenter.go_to_root(**cb))
        elif target == "..":
            self._wait(lambda **cb: self._presenter.go_back(**cb))
        else:
            prefix = self._resolve_folder(target)
            self._wait(lambda **cb: self._presenter.navigate_to(prefix=prefix, **cb))
        self._update_prompt()

    def do_expand(self, arg: str) -> None:
        """expand <folder>: show a sub-folder's contents in listings."""
        prefix = self._resolve_folder(arg.strip())
        self._wait(lambda **cb: self._presenter.expand(prefix=prefix, **cb))

    def do_collapse(self, arg: str) -> None:
        """collapse <folder>: hide a sub-folder's contents."""
        self._presenter.collapse(self._resolve_folder(arg.strip()))

    def do_refresh(self, arg: str) -> None:
        """refresh: reload the current folder from the bucket."""
        self._wait(lambda **cb: self._presenter.refresh(**cb))

    def do_put(self, arg: str) -> None:
        """put <local-path> [name]: upload a file into the current folder."""
        args = shlex.split(arg)
        if not args:
            self._print("usage: put <local-path> [name]")
            return
        name = args[1] if len(args) > 1 else None
        self._wait(
            lambda **cb: self._presenter.upload_object(
                source_path=args[0],
                target_prefix=self._presenter.current_prefix,
                name=name,
                **cb,
            ),
            success_message="Uploaded.",
        )

    def do_rm(self, arg: str) -> None:
        """rm <file>: delete a file from the current folder."""
        key = self._resolve_file(arg.strip())
        self._wait(lambda **cb: self._presenter.delete_object(key=key, **cb), success_message="Deleted.")

    def do_get(self, arg: str) -> None:
        """get <file> [destination]: download a file."""
        args = shlex.split(arg)
        if not args:
            self._print("usage: get <file> [destination]")
            return
        key = self._resolve_file(args[0])
        destination = args[1] if len(args) > 1 else "."
        self._wait(
            lambda **cb: self._presenter.download_object(key=key, destination=destination, **cb),
            success_message="Downloaded.",
        )

    def do_about(self, arg: str) -> None:
        """about: show the installed version."""
        info = self._presenter.package_info
        self._print(f"{info.name} {info.version}".strip())
        if info.summary:
            self._print(info.summary)
        if info.homepage:
            self._print(info.homepage)

    def do_quit(self, arg: str) -> bool:
        """quit: leave the explorer."""
        return True

    do_exit = do_quit
    do_EOF = do_quit

    def _print_listing(self, prefix: str, depth: int) -> None:
        entries = self._presenter.entries(prefix)
        indent = INDENT * depth
        if entries is None:
            self._print(f"{indent}(not loaded)")
            return
        if not entries and depth == 0:
            self._print("This folder is empty")
        for entry in entries:
            self._print(f"{indent}{format_entry(entry)}")
            if entry.is_folder and self._presenter.is_expanded(entry.path):
                self._print_listing(entry.path, depth + 1)

    def _resolve_folder(self, name: str) -> str:
        entry = self._find_entry(name.rstrip("/"), folder=True)
        if entry is not None:
            return entry.path
        if name.startswith("/"):
            return normalize_prefix(name)
        return normalize_prefix(self._presenter.current_prefix + name)

    def _resolve_file(self, name: str) -> str:
        entry = self._find_entry(name, folder=False)
        if entry is not None:
            return entry.path
        return name.lstrip("/") if name.startswith("/") else self._presenter.current_prefix + name

    def _find_entry(self, label: str, *, folder: bool) -> BrowserEntry | None:
        for entry in self._presenter.entries() or []:
            if entry.is_folder == folder and entry.label == label:
                return entry
        return None

    def _wait(
        self, start: Callable[..., None], *, success_message: str | None = None, quiet: bool = False
    ) -> None:
        finished = threading.Event()

        def on_success(result: object) -> None:
            if quiet:
                return
            if success_message:
                self._print(success_message)
            elif isinstance(result, FetchOutcome):
                self._print(format_location(result.prefix))

        def on_error(message: str) -> None:
            self._print(f"error: {message}")

        start(on_success=on_success, on_error=on_error, on_done=finished.set)
        if not finished.wait(self._timeout):
            LOGGER.warning("Operation still running after %s seconds", self._timeout)

    def _update_prompt(self) -> None:
        prefix = self._presenter.current_prefix if self._presenter.is_connected else ""
        self.prompt = f"{format_location(prefix)}> "

    def _print(self, text: str) -> None:
        self.stdout.write(f"{text}\n")
