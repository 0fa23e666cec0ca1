from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from market_feed.config.markets import target_for_symbol
from market_feed.config.settings import get_settings
from market_feed.services.markets import get_market_service


def _print_progress(rows: list) -> None:
    print(f"[MARKETS][batch_progress] visible={len(rows)}", flush=True)


async def run() -> dict:
    settings = get_settings()
    service = get_market_service()
    stocks = await service.fetch_multiple_stocks(
        [target_for_symbol(s) for s in settings.MARKETS_SYMBOLS],
        batch_size=settings.MARKETS_BATCH_SIZE,
        delay_ms=settings.MARKETS_BATCH_DELAY_MS,
        on_batch=_print_progress,
    )
    crypto = await service.fetch_crypto()
    return {
        "stocks": [row.model_dump() for row in stocks],
        "crypto": [row.model_dump() for row in crypto],
    }


def main() -> None:
    print(json.dumps(asyncio.run(run()), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
