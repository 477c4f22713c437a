"""CLI entry point for zapthread.

Manages the local relay list and renders reply threads, either from a
JSON dump of events or live from the configured read relays.

Examples:
    ```bash
    python -m zapthread relays list
    python -m zapthread relays add relay.damus.io
    python -m zapthread relays toggle wss://nos.lol --no-publish
    python -m zapthread thread --events dump.json --root r1
    python -m zapthread thread --root note1...
    python -m zapthread reply --root note1... --content "Nice post" --amount 21
    ```

Relay list changes are published as a NIP-65 event when ``PRIVATE_KEY`` is
set, unless ``--no-publish`` is given.
Replies need ``PRIVATE_KEY``; they are paid through LND when ``LND_REST_URL``
and ``LND_MACAROON`` are set.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from zapthread.core.config import RelaySettings, ZapThreadConfig
from zapthread.core.exceptions import ZapThreadError
from zapthread.core.logger import Logger, StructuredFormatter
from zapthread.models.constants import EventKind
from zapthread.models.event import Event
from zapthread.models.relay import relay_display_name
from zapthread.nips.nip19 import decode_event_id
from zapthread.nips.nip57 import zap_total_sats
from zapthread.services.capabilities import KeysSigner, RelayEventSource, RelayPublisher
from zapthread.services.payment import ENV_LND_MACAROON, ENV_LND_REST_URL, LndRestWallet
from zapthread.services.relays import RelayListManager
from zapthread.services.reply import ReplyAttempt, ReplyState, prepare_reply
from zapthread.services.thread import Thread, ThreadCache, ThreadSummary, assemble_thread
from zapthread.utils.keys import ENV_PRIVATE_KEY, load_keys_from_env, load_optional_keys


if TYPE_CHECKING:
    from collections.abc import Iterable


DEFAULT_CONFIG = Path("config") / "zapthread.yaml"
_BECH32_PREFIXES = ("note1", "nevent1", "nostr:")
_PREVIEW_LENGTH = 80
_REPLY_KINDS = frozenset({EventKind.TEXT_NOTE, EventKind.COMMENT})

logger = Logger("cli")


# ---------------------------------------------------------------------------
# Arguments and logging
# ---------------------------------------------------------------------------


def _positive_int(value: str) -> int:
    amount = int(value)
    if amount <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return amount


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="zapthread", description="Zap-to-reply Nostr threads")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    relays = commands.add_parser("relays", help="Show or change the active relay list")
    relay_actions = relays.add_subparsers(dest="action", required=True)
    relay_actions.add_parser("list", help="List active relays")
    relay_actions.add_parser("presets", help="List preset relays")
    for action, help_text in (
        ("add", "Add a relay"),
        ("remove", "Remove a relay"),
        ("toggle", "Add a relay if inactive, remove it otherwise"),
    ):
        sub = relay_actions.add_parser(action, help=help_text)
        sub.add_argument("url", help="Relay URL (wss:// is assumed when omitted)")
        sub.add_argument(
            "--no-publish",
            action="store_true",
            help=f"Do not publish a NIP-65 relay list even if {ENV_PRIVATE_KEY} is set",
        )
        if action == "add":
            flags = sub.add_mutually_exclusive_group()
            flags.add_argument("--read-only", action="store_true", help="Only read from this relay")
            flags.add_argument("--write-only", action="store_true", help="Only write to this relay")

    thread = commands.add_parser("thread", help="Render a reply thread")
    thread.add_argument("--root", required=True, help="Root event id (hex, note1 or nevent1)")
    thread.add_argument(
        "--events",
        type=Path,
        help="JSON file with a list of events (default: fetch from read relays)",
    )

    reply = commands.add_parser("reply", help="Pay a zap and publish a reply")
    reply.add_argument("--root", required=True, help="Root event id (hex, note1 or nevent1)")
    reply.add_argument("--parent", help="Reply being answered (default: the root)")
    reply.add_argument("--content", required=True, help="Reply text")
    reply.add_argument(
        "--amount",
        type=_positive_int,
        help="Zap amount in sats (default: reply_amount_sats from the config)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Install a ``StructuredFormatter`` on the root handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


# ---------------------------------------------------------------------------
# relays
# ---------------------------------------------------------------------------


def _usage(read: bool, write: bool) -> str:
    if read and write:
        return "read+write"
    if read:
        return "read"
    return "write" if write else "-"


def format_relays(settings: RelaySettings) -> str:
    return "\n".join(f"{r.url}\t{_usage(r.read, r.write)}" for r in settings.relays)


def _relay_manager(
    config: ZapThreadConfig, settings: RelaySettings, *, publish: bool
) -> RelayListManager:
    keys = load_optional_keys() if publish else None
    if keys is None:
        return RelayListManager(settings, path=config.relays.path)
    return RelayListManager(
        settings,
        path=config.relays.path,
        signer=KeysSigner(keys),
        publisher=RelayPublisher(lambda: settings.write_urls, timeout=config.timeouts.publish),
    )


async def run_relays(args: argparse.Namespace, config: ZapThreadConfig) -> int:
    settings = RelaySettings.load(config.relays.path, config.relays.presets)

    if args.action == "list":
        print(format_relays(settings))
        return 0
    if args.action == "presets":
        for url in config.relays.presets:
            marker = "*" if url in settings else " "
            print(f"{marker} {relay_display_name(url)}\t{url}")
        return 0

    manager = _relay_manager(config, settings, publish=not args.no_publish)
    if args.action == "add":
        published = await manager.add(args.url, read=not args.write_only, write=not args.read_only)
    elif args.action == "remove":
        published = await manager.remove(args.url)
    else:
        published = await manager.toggle(args.url)

    print(format_relays(manager.settings))
    if published is not None:
        print(f"published relay list {published.id}")
    return 0


# ---------------------------------------------------------------------------
# thread
# ---------------------------------------------------------------------------


def parse_root_id(value: str) -> str:
    """Decode NIP-19 identifiers; pass anything else through unchanged."""
    if value.startswith(_BECH32_PREFIXES):
        return decode_event_id(value)
    return value


def load_events(path: Path) -> list[Event]:
    """Load a JSON array of NIP-01 events, skipping invalid entries."""
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of events")

    events = []
    for i, item in enumerate(data):
        try:
            events.append(Event.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("event_skipped", path=str(path), index=i, error=str(e))
    return events


def _preview(content: str) -> str:
    first_line = content.strip().splitlines()[0] if content.strip() else ""
    if len(first_line) > _PREVIEW_LENGTH:
        return first_line[: _PREVIEW_LENGTH - 3] + "..."
    return first_line


def render_thread(thread: Thread, receipts: Iterable[Event] = ()) -> str:
    """Render *thread* as an indented outline."""
    summary = ThreadSummary.from_event(thread.root, thread)
    receipts = list(receipts)
    lines = [summary.title]
    if summary.url:
        lines.append(summary.url)
    if summary.body:
        lines.append(_preview(summary.body))
    lines.append(
        f"{summary.comment_count} comments, {zap_total_sats(receipts, thread.root.id)} sats"
    )
    for depth, event in thread.walk():
        zapped = zap_total_sats(receipts, event.id)
        suffix = f" [{zapped} sats]" if zapped else ""
        lines.append(f"{'  ' * (depth + 1)}{event.pubkey[:8]}: {_preview(event.content)}{suffix}")
    return "\n".join(lines)


async def run_thread(args: argparse.Namespace, config: ZapThreadConfig) -> int:
    root_id = parse_root_id(args.root)

    if args.events is not None:
        events = load_events(args.events)
        root = next((e for e in events if e.id == root_id), None)
        if root is None:
            logger.error("root_not_found", root=root_id, path=str(args.events))
            return 1
        replies = [e for e in events if e.kind in _REPLY_KINDS]
        thread = assemble_thread(root, replies)
        print(render_thread(thread, events))
        return 0

    settings = RelaySettings.load(config.relays.path, config.relays.presets)
    source = RelayEventSource(
        settings.read_urls, timeout=config.timeouts.fetch, limit=config.comment_limit
    )
    fetched = await ThreadCache(source).get(root_id)
    if fetched is None:
        logger.error("root_not_found", root=root_id)
        return 1
    print(render_thread(fetched))
    return 0


# ---------------------------------------------------------------------------
# reply
# ---------------------------------------------------------------------------


async def run_reply(args: argparse.Namespace, config: ZapThreadConfig) -> int:
    keys = load_keys_from_env(ENV_PRIVATE_KEY)
    settings = RelaySettings.load(config.relays.path, config.relays.presets)
    source = RelayEventSource(
        settings.read_urls, timeout=config.timeouts.fetch, limit=config.comment_limit
    )

    root_id = parse_root_id(args.root)
    root = await source.fetch_thread(root_id)
    if root is None:
        logger.error("root_not_found", root=root_id)
        return 1
    parent = None
    if args.parent is not None:
        parent_id = parse_root_id(args.parent)
        parent = await source.fetch_thread(parent_id)
        if parent is None:
            logger.error("parent_not_found", parent=parent_id)
            return 1

    context = await prepare_reply(
        source, root, parent, amount_sats=args.amount, relay_urls=settings.read_urls
    )
    wallet = LndRestWallet.from_env() if os.getenv(ENV_LND_REST_URL) else None
    attempt = ReplyAttempt(
        context,
        signer=KeysSigner(keys),
        publisher=RelayPublisher(settings.write_urls, timeout=config.timeouts.publish),
        wallet=wallet,
        config=config,
    )

    state = await attempt.submit(args.content)
    if state is ReplyState.SUCCEEDED and attempt.published is not None:
        print(f"published reply {attempt.published.id}")
        return 0
    if state is ReplyState.AWAITING_WALLET:
        print(
            f"error: set {ENV_LND_REST_URL} and {ENV_LND_MACAROON} to pay for replies",
            file=sys.stderr,
        )
        return 1
    print(f"error: reply {attempt.failure_reason}: {attempt.error}", file=sys.stderr)
    return 1


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def main(argv: list[str] | None = None) -> int:
    """Parse args, load config, and run the selected command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = ZapThreadConfig.from_yaml(args.config)
        if args.command == "relays":
            return await run_relays(args, config)
        if args.command == "reply":
            return await run_reply(args, config)
        return await run_thread(args, config)
    except (ZapThreadError, ValueError, OSError) as e:
        logger.error(f"{args.command}_failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
