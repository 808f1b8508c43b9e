"""Command line igloo client over a websocket channel."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence, TextIO

from . import envelopes
from .channel import WebSocketChannel
from .config import DEFAULT_CONFIG_FILE, load_config
from .identity import Identity, IdentitySource
from .models import MalformedEnvelope, Space
from .service import IglooSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="igloo-client", description="Inspect igloos on a game server.")
    parser.add_argument("--url", required=True, help="websocket url of the game server")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_FILE), help="JSON settings file")
    parser.add_argument("--wallet", default=None, help="authenticated wallet address")
    parser.add_argument("--timeout", type=float, default=10.0, help="seconds to wait for a reply")
    parser.add_argument("--log-level", default="WARNING", help="python logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("list", help="list all igloos")
    subparsers.add_parser("rentals", help="list igloos owned or rented by --wallet")
    enter = subparsers.add_parser("enter", help="check whether an igloo may be entered")
    enter.add_argument("igloo_id")
    return parser


def _format_space(space: Space) -> str:
    owner = space.owner_username or "-"
    state = "rented" if space.is_rented else "available"
    return f"{space.space_id}\t{state}\t{space.access_type.value}\t{owner}"


class _Waiter:
    """Resolves once an envelope with the given tag has been seen."""

    def __init__(self, tag: str) -> None:
        self.tag = tag
        self.event = asyncio.Event()

    def __call__(self, raw) -> None:
        try:
            envelope = envelopes.parse_envelope(raw)
        except MalformedEnvelope:
            return
        if envelope["type"] == self.tag:
            self.event.set()


async def run(args: argparse.Namespace, output: TextIO) -> int:
    config = load_config(args.config)
    identity = IdentitySource(Identity(wallet_address=args.wallet, authenticated=args.wallet is not None))
    channel = WebSocketChannel(args.url)
    await channel.connect()
    session = IglooSession(channel, identity=identity, config=config)
    tag = {"list": envelopes.LIST, "rentals": envelopes.MY_RENTALS, "enter": envelopes.CAN_ENTER}[args.command]
    waiter = _Waiter(tag)
    try:
        session.attach()
        channel.add_listener(waiter)
        granted: list[str] = []
        if args.command == "enter":
            session.request_entry(args.igloo_id, granted.append)
        elif args.command == "rentals" and not identity.current.present:
            session.workflows.request_my_rentals()
        await asyncio.wait_for(waiter.event.wait(), timeout=args.timeout)

        if args.command == "list":
            for space in session.store.spaces:
                output.write(_format_space(space) + "\n")
        elif args.command == "rentals":
            for space in session.store.my_rentals:
                output.write(_format_space(space) + "\n")
        elif granted:
            output.write(f"granted {granted[0]}\n")
        else:
            requirements = session.store.requirements
            if requirements is None:
                output.write(f"denied {args.igloo_id}\n")
                return 1
            status = requirements.status
            output.write(
                f"denied {status.space_id} reason={status.blocking_reason} fee={status.payment_amount:g}"
                f" token_required={status.token_gate_required:g}\n"
            )
            return 1
        return 0
    except asyncio.TimeoutError:
        print(f"error: no {tag} reply within {args.timeout}s", file=sys.stderr)
        return 2
    finally:
        session.close()
        await channel.close()


def main(argv: Optional[Sequence[str]] = None, output: TextIO = sys.stdout) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return asyncio.run(run(args, output))
