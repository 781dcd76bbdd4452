"""Connects to a Kuzzle server and prints the server time."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path


async def _run() -> None:
    from kuzzle_realtime import RealtimeClient, get_settings  # type: ignore

    settings = get_settings()
    async with RealtimeClient(settings) as client:
        await client.wait_until_connected(timeout=settings.open_timeout_seconds)
        response = await client.send_request({"controller": "server", "action": "now"})
        print(response.result)


def main() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))

    # Lazy import after adjusting sys.path
    from kuzzle_realtime.config import get_settings  # type: ignore

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    asyncio.run(_run())


if __name__ == "__main__":
    main()
