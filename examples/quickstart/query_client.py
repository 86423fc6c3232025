#!/usr/bin/env python3
"""Query Client - queries the channels served by echo_handler.py.

Usage:
    python query_client.py --message "Hello" --count 5
    python query_client.py --channel fail
    python query_client.py --send
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time

from echo_handler import build_config

from rpc_messenger import (
    Messenger,
    QueryTimeoutError,
    RemoteHandlerError,
    TransportError,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def main(args: argparse.Namespace) -> None:
    async with Messenger(build_config(args)) as messenger:
        channel = messenger.get_message_channel(args.channel)

        for i in range(args.count):
            payload = {"message": args.message, "sequence": i}
            if args.send:
                await channel.send(payload)
                logger.info(f"sent #{i}")
                continue

            started = time.perf_counter()
            try:
                result = await channel.query(payload, timeout=args.timeout)
            except RemoteHandlerError as e:
                logger.error(f"#{i} handler failed: {e.error_text}")
            except QueryTimeoutError:
                logger.error(f"#{i} no response within {args.timeout}s")
            except TransportError as e:
                logger.error(f"#{i} broker error: {e}")
                break
            else:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.info(f"#{i} -> {result!r} ({elapsed_ms:.1f}ms)")

            if args.delay:
                await asyncio.sleep(args.delay)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Query the echo channel")
    parser.add_argument("--identity", default="query-client", help="Client identity")
    parser.add_argument("--prefix", default=None, help="Channel prefix")
    parser.add_argument("--transport", choices=["nats", "redis"], default="nats")
    parser.add_argument("--url", default=None, help="Broker URL")
    parser.add_argument("--channel", default="echo", help="Logical channel to query")
    parser.add_argument("--message", default="Hello, World!")
    parser.add_argument("--count", type=int, default=1)
    parser.add_argument("--delay", type=float, default=0.0)
    parser.add_argument("--timeout", type=float, default=5.0)
    parser.add_argument("--send", action="store_true", help="Send without waiting for replies")

    asyncio.run(main(parser.parse_args()))
