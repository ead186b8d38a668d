#!/usr/bin/env python3
"""
Interactive emoji search from the terminal.

Each line read from stdin is classified through the search coordinator,
with inference in a worker process and the index loaded from artifacts.
"""

import argparse
import asyncio
import sys
from pathlib import Path

import dotenv

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

dotenv.load_dotenv()

from fetchmoji.core import config
from fetchmoji.core.coordinator import SearchCoordinator, SearchDeps, store_search
from fetchmoji.core.loader import make_store_loader
from fetchmoji.core.worker import ProcessInferenceWorker


async def run(args) -> int:
    deps = SearchDeps(
        load_store=make_store_loader(args.bin, args.meta),
        search=store_search(args.threshold, args.limit),
        create_worker=lambda: ProcessInferenceWorker(provider_name=args.provider),
    )
    coordinator = SearchCoordinator(deps)
    coordinator.initialize(no_cache=args.no_cache)

    print("Type a query (Ctrl-D to quit)")
    try:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                return 0

            coordinator.classify(line.strip())
            while coordinator.is_searching:
                if coordinator.store_error is not None:
                    print(f"ERROR: {coordinator.store_error}")
                    return 1
                await asyncio.sleep(0.05)

            print(" ".join(coordinator.matched or []) or "(no matches)")
    finally:
        coordinator.destroy()


def main():
    parser = argparse.ArgumentParser(description="Search emojis interactively")
    parser.add_argument("--bin", default=config.EMBEDDINGS_BIN_URL, help="Embeddings blob URL or path")
    parser.add_argument("--meta", default=config.EMOJI_META_URL, help="Metadata JSON URL or path")
    parser.add_argument("--provider", choices=["sentence-transformers", "hash"], default=None)
    parser.add_argument("--threshold", type=float, default=config.MATCH_THRESHOLD)
    parser.add_argument("--limit", type=int, default=config.SEARCH_LIMIT)
    parser.add_argument("--no-cache", action="store_true", help="Reload the model instead of reusing a cached one")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
