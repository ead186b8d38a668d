#!/usr/bin/env python3
"""
Build the emoji embeddings artifacts.

Embeds every emoji in the bundled index, then writes the int8 blob, its
metadata, a gzipped copy, a prebuilt SQLite database and a JSON dump.
"""

import argparse
import sys
from pathlib import Path

import dotenv

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

dotenv.load_dotenv()

from fetchmoji.core import config
from fetchmoji.core.build import FAST_LIMIT, build_artifacts
from fetchmoji.core.errors import FetchmojiError


def main():
    parser = argparse.ArgumentParser(
        description="Build emoji embeddings artifacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Full build with the configured model
  %(prog)s --fast                   # First 50 emojis only
  %(prog)s --provider hash          # Offline build without downloading a model

Environment variables:
- EMBED_MODEL_NAME=thenlper/gte-small
- ARTIFACTS_DIR=./artifacts
        """
    )

    parser.add_argument(
        "--out-dir", "-o",
        default=config.ARTIFACTS_DIR,
        help="Directory for the artifacts (default: ARTIFACTS_DIR)"
    )

    parser.add_argument(
        "--fast", "-f",
        action="store_true",
        help=f"Faster test run with the first {FAST_LIMIT} emojis"
    )

    parser.add_argument(
        "--provider", "-p",
        choices=["sentence-transformers", "hash"],
        default=None,
        help="Embedding provider (default: EMBED_PROVIDER)"
    )

    parser.add_argument(
        "--index",
        default=None,
        help="Alternate emoji index JSON (glyph -> keywords)"
    )

    args = parser.parse_args()

    provider = config.get_embedding_provider(args.provider)

    try:
        report = build_artifacts(
            args.out_dir,
            provider,
            limit=FAST_LIMIT if args.fast else None,
            index_path=args.index,
        )
    except FetchmojiError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"{'file':<24}{'size':>12}")
    for item in report:
        size_mb = item["size_bytes"] / (1024 * 1024)
        print(f"{item['file']:<24}{size_mb:>9.2f} MB")


if __name__ == "__main__":
    main()
