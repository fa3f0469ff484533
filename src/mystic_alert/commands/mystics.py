"""
Mystic Alert CLI Commands.

Commands for running the feed watcher and managing filters, alert text
and the Discord webhook. Management commands edit settings.json; a
running watcher picks the changes up on its next settings refresh.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
from pathlib import Path

from ..core.config import get_settings
from ..core.formatters import get_utc_timestamp
from ..core.logging import get_logger
from ..services.mystics.errors import FilterRegistryError, ReferenceDataError
from ..services.mystics.models import FeedConfig, Item
from ..services.mystics.query import compile_query
from ..services.mystics.reference import ReferenceIndex, fetch_reference_index
from ..services.mystics.registry import FilterRegistry
from ..services.mystics.settings_store import SettingsStore, WebhookConfig

logger = get_logger(__name__)

STATUS_INTERVAL_SECONDS = 300


def _get_store() -> SettingsStore:
    settings = get_settings()
    return SettingsStore(settings.settings_path, prefix=settings.bot_prefix)


def _open_registry() -> FilterRegistry:
    """
    Open the registry for editing.

    Only filter names and alerts are persisted, so management commands
    compile against an empty reference index instead of fetching one.
    """
    return FilterRegistry.load(_get_store(), ReferenceIndex())


def _error(error_type: str, message: str) -> dict:
    return {
        "error": error_type,
        "message": message,
        "query_timestamp": get_utc_timestamp(),
    }


def _ok(**fields) -> dict:
    return {"status": "ok", **fields, "query_timestamp": get_utc_timestamp()}


# =============================================================================
# Watcher
# =============================================================================


def cmd_run(args: argparse.Namespace) -> dict:
    """
    Run the mystic watcher in the foreground. Use Ctrl+C to stop.
    """
    from ..services.mystics.service import MysticWatcher

    settings = get_settings()
    config = FeedConfig.from_settings(settings)
    if args.reconnect_delay is not None:
        config.reconnect_delay_seconds = args.reconnect_delay

    watcher = MysticWatcher(config, _get_store(), reference_url=settings.reference_url)

    async def run_watcher() -> dict:
        stop_event = asyncio.Event()

        def signal_handler():
            logger.info("Shutdown signal received")
            stop_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, signal_handler)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                pass

        try:
            await watcher.start()
        except ReferenceDataError as e:
            logger.error("Cannot start without pit reference: %s", e)
            return _error("reference_unavailable", str(e))

        print(f"Watching {config.feed_url}")
        print("Press Ctrl+C to stop\n")

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=STATUS_INTERVAL_SECONDS)
            except asyncio.TimeoutError:
                status = watcher.get_status()
                logger.info(
                    "Status: %s, %d frames, %d alerts",
                    status.get("state"),
                    status.get("frames_received", 0),
                    status.get("pipeline", {}).get("dispatched", 0),
                )

        status = watcher.get_status()
        await watcher.stop()
        print("\nWatcher stopped")
        return _ok(final_status=status)

    try:
        return asyncio.run(run_watcher())
    except KeyboardInterrupt:
        print("\nInterrupted")
        return {}


# =============================================================================
# Alert settings
# =============================================================================


def cmd_enable(args: argparse.Namespace) -> dict:
    """Enable alerting (requires a webhook)."""
    registry = _open_registry()
    try:
        registry.enable()
    except FilterRegistryError as e:
        return _error("webhook_not_configured", str(e))
    return _ok(enabled=True)


def cmd_disable(args: argparse.Namespace) -> dict:
    """Disable alerting."""
    registry = _open_registry()
    registry.disable()
    return _ok(enabled=False)


def cmd_set_webhook(args: argparse.Namespace) -> dict:
    """Set the Discord webhook alerts are delivered to."""
    try:
        webhook = WebhookConfig.from_url(args.url, location=args.location)
    except ValueError as e:
        return _error("invalid_webhook", str(e))

    registry = _open_registry()
    registry.set_webhook(webhook)
    return _ok(webhook_id=webhook.id, location=webhook.location)


def cmd_set_alert(args: argparse.Namespace) -> dict:
    """Set the alert text sent with every alert."""
    text = " ".join(args.text)
    registry = _open_registry()
    registry.set_global_alert(text)
    return _ok(alert=text)


# =============================================================================
# Filters
# =============================================================================


def cmd_add(args: argparse.Namespace) -> dict:
    """Add a filter query."""
    name = args.name.lower()
    registry = _open_registry()
    try:
        registry.add(name)
    except FilterRegistryError as e:
        return _error("duplicate_filter", str(e))
    return _ok(added=name, filter_count=len(registry))


def cmd_remove(args: argparse.Namespace) -> dict:
    """Remove a filter query."""
    name = args.name.lower()
    registry = _open_registry()
    removed = registry.remove(name)
    return _ok(removed=name, count=removed, filter_count=len(registry))


def cmd_set_filter_alert(args: argparse.Namespace) -> dict:
    """Set (or with no text, clear) the extra alert text for one filter."""
    name = args.name.lower()
    text = " ".join(args.text) if args.text else None
    registry = _open_registry()
    try:
        registry.set_alert(name, text)
    except FilterRegistryError as e:
        return _error("filter_not_found", str(e))
    return _ok(filter=name, alert=text)


def cmd_list(args: argparse.Namespace) -> dict:
    """List filters, ten per page."""
    registry = _open_registry()
    page = registry.list_page(args.page)
    return _ok(
        enabled=registry.enabled,
        alert=registry.alert,
        **page.to_dict(),
    )


def cmd_check(args: argparse.Namespace) -> dict:
    """
    Evaluate a query against an item JSON file.

    Uses --reference (a saved reference document) for class clauses,
    or fetches the live one.
    """
    try:
        item = Item.from_dict(json.loads(Path(args.item).read_text(encoding="utf-8")))
    except (OSError, ValueError) as e:
        return _error("invalid_item", str(e))

    try:
        if args.reference:
            data = json.loads(Path(args.reference).read_text(encoding="utf-8"))
            index = ReferenceIndex.from_reference(data)
        else:
            index = asyncio.run(fetch_reference_index(url=get_settings().reference_url))
    except (OSError, ValueError, ReferenceDataError) as e:
        return _error("reference_unavailable", str(e))

    query = compile_query(args.query, index)
    return _ok(
        query=args.query,
        matches=query.matches(item),
        clauses=[
            {
                "kind": clause.kind.value,
                "negated": clause.negated,
                "key": clause.key,
                "passes": clause.matches(item),
            }
            for clause in query.clauses
        ],
    )


# =============================================================================
# Parser registration
# =============================================================================


def register_parsers(subparsers) -> None:
    """Register mystic alert command parsers."""

    run_parser = subparsers.add_parser("run", help="Watch the mystic feed and send alerts")
    run_parser.add_argument(
        "--reconnect-delay",
        type=float,
        help="Seconds to wait before reconnecting (default: 30)",
    )
    run_parser.set_defaults(func=cmd_run)

    enable_parser = subparsers.add_parser("enable", help="Enable alerts")
    enable_parser.set_defaults(func=cmd_enable)

    disable_parser = subparsers.add_parser("disable", help="Disable alerts")
    disable_parser.set_defaults(func=cmd_disable)

    webhook_parser = subparsers.add_parser("set-webhook", help="Set the Discord webhook URL")
    webhook_parser.add_argument("url", help="https://discord.com/api/webhooks/<id>/<token>")
    webhook_parser.add_argument("--location", help="Guild ID the webhook belongs to")
    webhook_parser.set_defaults(func=cmd_set_webhook)

    alert_parser = subparsers.add_parser("set-alert", help="Set the alert text")
    alert_parser.add_argument("text", nargs="+", help="Alert text (e.g. a role mention)")
    alert_parser.set_defaults(func=cmd_set_alert)

    add_parser = subparsers.add_parser("add", help="Add a filter query")
    add_parser.add_argument("name", help="Filter query, e.g. sword,tokens6+")
    add_parser.set_defaults(func=cmd_add)

    remove_parser = subparsers.add_parser("remove", help="Remove a filter query")
    remove_parser.add_argument("name", help="Filter query to remove")
    remove_parser.set_defaults(func=cmd_remove)

    filter_alert_parser = subparsers.add_parser(
        "set-filter-alert",
        help="Set extra alert text for one filter (omit text to clear)",
    )
    filter_alert_parser.add_argument("name", help="Filter query")
    filter_alert_parser.add_argument("text", nargs="*", help="Extra alert text")
    filter_alert_parser.set_defaults(func=cmd_set_filter_alert)

    list_parser = subparsers.add_parser("list", help="List filters")
    list_parser.add_argument("page", type=int, nargs="?", default=1, help="Page (default: 1)")
    list_parser.set_defaults(func=cmd_list)

    check_parser = subparsers.add_parser("check", help="Test a query against an item JSON file")
    check_parser.add_argument("query", help="Filter query")
    check_parser.add_argument("item", help="Path to an item JSON object")
    check_parser.add_argument("--reference", help="Path to a saved pit reference document")
    check_parser.set_defaults(func=cmd_check)
