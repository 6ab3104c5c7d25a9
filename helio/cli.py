from __future__ import annotations

import argparse
import json
from typing import List

from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import Settings, load_settings
from .log import LogConfig, get_logger, setup_logging
from .store import BookmarkStore

log = get_logger(__name__)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="helio",
        description="Personal bookmark manager: JSON store, REST API, web UI and TUI.",
    )
    p.add_argument("-V", "--version", action="version", version=f"helio {__version__}")
    p.add_argument("--config", default=None, help="YAML config file (optional). Env vars override defaults.")
    p.add_argument("--data", default=None, help="Bookmarks JSON file (default: data/bookmarks.json).")
    p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    p.add_argument("--no-color", action="store_true", help="Disable colored logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("tui", help="Run the terminal UI.")

    api = sub.add_parser("api", help="Run the API server only.")
    _add_server_args(api)

    gui = sub.add_parser("gui", help="Serve the API and the web UI.")
    _add_server_args(gui)
    gui.add_argument("--static-dir", default=None, help="Serve web UI assets from this directory instead of the bundled ones.")

    ls = sub.add_parser("list", help="Print bookmarks (filtered when QUERY is given).")
    ls.add_argument("query", nargs="?", default="", help="Case-insensitive substring search.")
    ls.add_argument("--json", action="store_true", help="Print JSON instead of a table.")

    args = p.parse_args(argv)
    cfg = load_settings(args.config)
    if args.data:
        cfg.data_path = args.data
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color))

    store = BookmarkStore(cfg.data_file)

    if args.cmd == "tui":
        from .tui import run_tui

        return run_tui(store, cfg)
    if args.cmd == "api":
        return _cmd_serve(args, cfg, store, serve_ui=False)
    if args.cmd == "gui":
        if args.static_dir:
            cfg.static_dir = args.static_dir
        return _cmd_serve(args, cfg, store, serve_ui=True)
    if args.cmd == "list":
        return _cmd_list(args, store)
    return 2


def _add_server_args(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1, env HELIO_HOST).")
    sp.add_argument("--port", type=int, default=None, help="Port (default: 5174, env HELIO_PORT / BM_PORT).")


def _cmd_serve(args, cfg: Settings, store: BookmarkStore, *, serve_ui: bool) -> int:
    import uvicorn

    from .api import create_app

    if args.host:
        cfg.host = args.host
    if args.port:
        cfg.port = args.port

    try:
        app = create_app(cfg, store, serve_ui=serve_ui)
    except FileNotFoundError as e:
        log.error("%s", e)
        return 2

    label = "GUI" if serve_ui else "API"
    log.info("%s server running on http://%s:%d (data: %s)", label, cfg.host, cfg.port, store.path)
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None)
    return 0


def _cmd_list(args, store: BookmarkStore) -> int:
    bookmarks = store.search(args.query)
    if args.json:
        print(json.dumps([b.to_dict() for b in bookmarks], indent=2, ensure_ascii=False))
        return 0

    console = Console()
    if not bookmarks:
        console.print("[dim]No bookmarks.[/dim]")
        return 0
    for b in bookmarks:
        tags = f"  [cyan]{escape(', '.join(b.tags))}[/cyan]" if b.tags else ""
        console.print(f"{b.id}  [bold]{escape(b.title)}[/bold] <{escape(b.url)}>{tags}", highlight=False)
    return 0
