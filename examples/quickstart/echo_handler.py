#!/usr/bin/env python3
"""Echo Handler - serves the 'echo' and 'fail' logical channels.

Usage:
    # NATS on localhost
    python echo_handler.py

    # Redis with a deployment prefix
    python echo_handler.py --transport redis --url redis://localhost:6379/0 --prefix demo
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from rpc_messenger import Messenger, MessengerConfig

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> MessengerConfig:
    options: dict[str, Any] = {}
    if args.transport == "nats":
        options["servers"] = [args.url or "nats://localhost:4222"]
    elif args.url:
        options["url"] = args.url
    return MessengerConfig(
        client_identity=args.identity,
        channel_prefix=args.prefix,
        transport=args.transport,
        transport_options=options,
    )


async def main(args: argparse.Namespace) -> None:
    messenger = Messenger(build_config(args))

    @messenger.handler("echo")
    async def echo(payload: Any) -> dict[str, Any]:
        logger.info(f"echo <- {payload!r}")
        return {"echo": payload, "served_by": args.identity}

    @messenger.handler("fail")
    def fail(payload: Any) -> None:
        raise ValueError(f"refusing {payload!r}")

    async with messenger:
        logger.info(f"Serving {messenger.dispatcher.handlers} as '{args.identity}', Ctrl+C to stop")
        await asyncio.Event().wait()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Serve the echo channel")
    parser.add_argument("--identity", default="echo-handler", help="Client identity")
    parser.add_argument("--prefix", default=None, help="Channel prefix")
    parser.add_argument("--transport", choices=["nats", "redis"], default="nats")
    parser.add_argument("--url", default=None, help="Broker URL")

    try:
        asyncio.run(main(parser.parse_args()))
    except KeyboardInterrupt:
        logger.info("Stopped")
