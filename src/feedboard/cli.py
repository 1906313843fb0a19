from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from .config import Config, load_config
from .dashboard import DashboardState, runtime_factory
from .errors import FetchError, LayoutError
from .fetch import HttpFetcher, with_api_key
from .layout import LayoutStore, export_layout, import_layout
from .paths import discover_paths
from .renderers import render_with
from .renderers.render_text import format_dashboard
from .runtime import ConnectionState
from .templates import TEMPLATES, get_template

logger = logging.getLogger(__name__)

def _settled(dashboard: DashboardState) -> bool:
    snaps = dashboard.snapshots()
    return bool(snaps) and all(
        s.has_data or s.last_error is not None or s.connection_state is ConnectionState.IDLE
        for s in snaps
    )

def cmd_run(cfg: Config, args: argparse.Namespace) -> int:
    if args.template:
        widgets = get_template(args.template)
        store = None
    else:
        store = LayoutStore(args.layout or cfg.layout_path)
        widgets = store.load()
    if not widgets:
        logger.error("No widgets configured. Use --template or import a layout first.")
        return 1

    dashboard = DashboardState(widgets, runtime_factory=runtime_factory(cfg), store=store)
    dashboard.mount()
    try:
        if args.watch:
            while True:
                time.sleep(args.interval)
                print(format_dashboard(dashboard.snapshots()))
        deadline = time.monotonic() + args.duration
        while time.monotonic() < deadline and not _settled(dashboard):
            time.sleep(0.25)
        snapshots = dashboard.snapshots()
    except KeyboardInterrupt:
        snapshots = dashboard.snapshots()
    finally:
        dashboard.unmount()

    print(format_dashboard(snapshots), end="")
    renderer = args.renderer or cfg.renderer_kind
    out_path = Path(args.out) if args.out else cfg.output_path
    if renderer == "text" and not args.out:
        out_path = out_path.with_suffix(".txt")
    rendered = render_with(renderer, out_path, snapshots, cfg.resolution, cfg.columns, cfg.theme)
    logger.info("Wrote %s", rendered)
    return 0

def cmd_explore(cfg: Config, args: argparse.Namespace) -> int:
    fetcher = HttpFetcher(timeout=cfg.http_timeout, user_agent=cfg.user_agent)
    try:
        payload = fetcher.get_json(with_api_key(args.url, args.api_key, args.api_key_param))
    except FetchError as e:
        logger.error("Fetch failed: %s", e)
        return 1
    finally:
        fetcher.close()

    needle = (args.filter or "").lower()
    for path, value in discover_paths(payload).items():
        if needle and needle not in path.lower():
            continue
        print(f"{path}\t{value!r}"[:200])
    return 0

def cmd_templates(cfg: Config, args: argparse.Namespace) -> int:
    for name in sorted(TEMPLATES):
        labels = ", ".join(w["config"]["label"] for w in TEMPLATES[name])
        print(f"{name}\t{labels}")
    return 0

def cmd_export(cfg: Config, args: argparse.Namespace) -> int:
    try:
        widgets = get_template(args.template)
    except KeyError as e:
        logger.error("%s", e.args[0])
        return 1
    print(export_layout(widgets, args.out))
    return 0

def cmd_import(cfg: Config, args: argparse.Namespace) -> int:
    try:
        widgets = import_layout(args.file)
    except (OSError, LayoutError) as e:
        logger.error("Cannot import %s: %s", args.file, e)
        return 1
    store = LayoutStore(args.layout or cfg.layout_path)
    store.save(widgets)
    print(f"Imported {len(widgets)} widgets into {store.path}")
    return 0

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="feedboard")
    ap.add_argument("--config", help="Path to config.yaml")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Connect every widget and render a snapshot")
    run.add_argument("--layout", help="Layout JSON file (overrides layout.path)")
    run.add_argument("--template", choices=sorted(TEMPLATES), help="Use a built-in template instead of the layout")
    run.add_argument("--duration", type=float, default=5.0, help="Seconds to wait for data")
    run.add_argument("--watch", action="store_true", help="Print the dashboard until interrupted")
    run.add_argument("--interval", type=float, default=2.0, help="Seconds between --watch refreshes")
    run.add_argument("--renderer", choices=["pillow", "text"], help="Override renderer.kind from config")
    run.add_argument("--out", help="Output file")
    run.set_defaults(func=cmd_run)

    explore = sub.add_parser("explore", help="List the field paths a URL returns")
    explore.add_argument("url")
    explore.add_argument("--api-key")
    explore.add_argument("--api-key-param")
    explore.add_argument("--filter", help="Only show paths containing this text")
    explore.set_defaults(func=cmd_explore)

    templates = sub.add_parser("templates", help="List built-in templates")
    templates.set_defaults(func=cmd_templates)

    export = sub.add_parser("export", help="Write a template as a layout file")
    export.add_argument("template")
    export.add_argument("out")
    export.set_defaults(func=cmd_export)

    imp = sub.add_parser("import", help="Validate a layout file and make it the saved layout")
    imp.add_argument("file")
    imp.add_argument("--layout", help="Destination layout file (overrides layout.path)")
    imp.set_defaults(func=cmd_import)
    return ap

def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(cfg, args)

if __name__ == "__main__":
    sys.exit(main())
