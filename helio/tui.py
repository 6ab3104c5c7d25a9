"""Terminal UI.

A line-oriented loop: rich draws the bookmark table and status line,
prompt_toolkit reads commands and field values. Edits go straight to the
store (no HTTP round trip).
"""

from __future__ import annotations

import webbrowser
from typing import Callable, Dict, List, Optional

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import Settings
from .errors import BookmarkNotFoundError, BookmarkValidationError
from .fetch import PageMetadata, apply_metadata, fetch_metadata
from .log import get_logger
from .model import Bookmark
from .store import BookmarkStore
from .url_norm import normalize_user_url

log = get_logger(__name__)

FIELD_ORDER = ("url", "title", "description", "tags", "notes", "siteName", "image", "language")
OPTIONAL_DRAFT_FIELDS = ("description", "notes", "siteName", "image", "language")
CLEARABLE_FIELDS = OPTIONAL_DRAFT_FIELDS + ("tags",)
CLEAR_MARKER = "-"

FIELD_LABELS = {
    "siteName": "site name",
    "image": "image url",
}

HELP = """\
add              add a bookmark (metadata is fetched after the URL)
edit N           edit bookmark N (Enter keeps a value, '-' clears it)
delete N         delete bookmark N (asks for YES)
open N           open bookmark N in the browser
search TEXT      filter the list
clear            clear the search
refresh          re-read the data file
help             this text
quit             leave"""

Draft = Dict[str, str]
AskFn = Callable[[str, str], str]
FetchFn = Callable[[str], PageMetadata]


def empty_draft() -> Draft:
    return {f: "" for f in FIELD_ORDER}


def draft_from_bookmark(b: Bookmark) -> Draft:
    return {
        "url": b.url,
        "title": b.title,
        "description": b.description or "",
        "tags": ", ".join(b.tags),
        "notes": b.notes or "",
        "siteName": b.site_name or "",
        "image": b.image or "",
        "language": b.language or "",
    }


def draft_changes(before: Draft, after: Draft) -> Draft:
    """Fields that differ between two drafts, ready for BookmarkStore.update."""
    return {k: after[k] for k in FIELD_ORDER if after[k] != before[k]}


class HelioTui:
    def __init__(
        self,
        store: BookmarkStore,
        settings: Settings,
        *,
        console: Optional[Console] = None,
        ask: Optional[AskFn] = None,
        fetch: Optional[FetchFn] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.console = console or Console()
        self._session: Optional[PromptSession] = None
        self.ask: AskFn = ask or self._prompt
        self.fetch: FetchFn = fetch or self._fetch
        self.query = ""
        self.status = "Ready."
        self.rows: List[Bookmark] = []

    # -- I/O -------------------------------------------------------------

    def _prompt(self, label: str, default: str = "") -> str:
        if self._session is None:
            self._session = PromptSession()
        return self._session.prompt(f"{label}: ", default=default)

    def _fetch(self, url: str) -> PageMetadata:
        return fetch_metadata(
            url,
            timeout_s=self.settings.fetch_timeout_s,
            user_agent=self.settings.fetch_user_agent,
            max_bytes=self.settings.fetch_max_bytes,
        )

    def render(self) -> None:
        self.console.print(Panel(f"helio bookmarks\n[dim]Data: {self.store.path}[/dim]", border_style="cyan"))
        table = Table(title=f"Bookmarks ({len(self.rows)})", expand=True)
        table.add_column("#", justify="right", style="cyan", no_wrap=True)
        table.add_column("Title")
        table.add_column("URL", overflow="fold")
        table.add_column("Tags")
        table.add_column("Added", no_wrap=True)
        for i, b in enumerate(self.rows, start=1):
            table.add_row(str(i), escape(b.title), escape(b.url), escape(", ".join(b.tags)), b.created_at[:10])
        if self.rows:
            self.console.print(table)
        else:
            self.console.print("[dim]No bookmarks yet.[/dim]" if not self.query else "[dim]No matches.[/dim]")
        search = self.query or "-"
        self.console.print(f"[yellow]{escape(self.status)}[/yellow]  [dim]search: {escape(search)}[/dim]")

    # -- state -----------------------------------------------------------

    def refresh(self) -> None:
        self.rows = self.store.search(self.query)

    def _pick(self, arg: str) -> Optional[Bookmark]:
        try:
            n = int(arg)
        except ValueError:
            self.status = "Select a bookmark first (give its number)."
            return None
        if not 1 <= n <= len(self.rows):
            self.status = f"No bookmark #{n}."
            return None
        return self.rows[n - 1]

    # -- commands --------------------------------------------------------

    def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the user asked to quit."""
        cmd, _, arg = line.strip().partition(" ")
        cmd = cmd.lower()
        arg = arg.strip()

        if cmd in ("quit", "q", "exit"):
            return False
        if cmd == "":
            return True
        if cmd == "help":
            self.console.print(HELP)
        elif cmd == "add":
            self.add()
        elif cmd == "edit":
            target = self._pick(arg)
            if target:
                self.edit(target)
        elif cmd in ("delete", "rm"):
            target = self._pick(arg)
            if target:
                self.delete(target)
        elif cmd == "open":
            target = self._pick(arg)
            if target:
                webbrowser.open(target.url)
                self.status = f"Opened {target.url}"
        elif cmd in ("search", "/"):
            self.query = arg
            self.status = f"Searching: {arg}" if arg else "Search cleared."
        elif cmd == "clear":
            self.query = ""
            self.status = "Search cleared."
        elif cmd == "refresh":
            self.status = "Refreshed."
        else:
            self.status = f"Unknown command: {cmd} (try 'help')"
        self.refresh()
        return True

    def _collect(self, draft: Draft, *, editing: bool) -> Draft:
        for field in FIELD_ORDER:
            label = f"Enter {FIELD_LABELS.get(field, field)}"
            if editing:
                label += " (enter to keep)"
            value = self.ask(label, draft[field]).strip()
            if editing and value == "":
                continue
            if editing and value == CLEAR_MARKER and field in CLEARABLE_FIELDS:
                value = ""
            draft[field] = value
            if not editing and field == "url" and value:
                self._prefill(draft)
        return draft

    def _prefill(self, draft: Draft) -> None:
        target = normalize_user_url(draft["url"])
        if target is None:
            return
        self.console.print("[cyan]Fetching metadata...[/cyan]")
        meta = self.fetch(target)
        apply_metadata(draft, meta)
        self.status = "Metadata loaded." if meta.title else "No metadata found."

    def add(self) -> Optional[Bookmark]:
        draft = self._collect(empty_draft(), editing=False)
        if not draft["url"].strip() or not draft["title"].strip():
            self.status = "Title and URL are required."
            return None
        try:
            created = self.store.create(draft)
        except BookmarkValidationError as e:
            self.status = f"Not saved: {e.message}"
            return None
        self.status = "Bookmark added."
        return created

    def edit(self, target: Bookmark) -> Optional[Bookmark]:
        before = draft_from_bookmark(target)
        after = self._collect(dict(before), editing=True)
        changes = draft_changes(before, after)
        if not changes:
            self.status = "Nothing changed."
            return target
        try:
            updated = self.store.update(target.id, changes)
        except BookmarkValidationError as e:
            self.status = f"Not saved: {e.message}"
            return None
        except BookmarkNotFoundError:
            self.status = "Bookmark not found (deleted elsewhere?)."
            return None
        self.status = "Bookmark updated."
        return updated

    def delete(self, target: Bookmark) -> bool:
        answer = self.ask(f"Type YES to delete {target.title}", "")
        if answer.strip().upper() != "YES":
            self.status = "Delete cancelled."
            return False
        if self.store.delete(target.id):
            self.status = "Bookmark deleted."
            return True
        self.status = "Bookmark not found (deleted elsewhere?)."
        return False

    def run(self) -> int:
        self.refresh()
        while True:
            self.render()
            try:
                line = self.ask("helio", "")
            except (EOFError, KeyboardInterrupt):
                break
            try:
                if not self.handle(line):
                    break
            except (EOFError, KeyboardInterrupt):
                self.status = "Cancelled."
                self.refresh()
        return 0


def run_tui(store: BookmarkStore, settings: Settings) -> int:
    log.debug("Starting TUI on %s", store.path)
    return HelioTui(store, settings).run()
