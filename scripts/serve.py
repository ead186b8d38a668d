#!/usr/bin/env python3
"""
Serve the fetchmoji API and the prebuilt artifacts.
"""

import argparse
import sys
from pathlib import Path

import dotenv
import uvicorn

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

dotenv.load_dotenv()

from fetchmoji.api.main import app
from fetchmoji.core.config import validate_config


def main():
    parser = argparse.ArgumentParser(description="Serve fetchmoji artifacts and search API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    issues = validate_config()
    if issues:
        for issue in issues:
            print(f"CONFIG: {issue}")
        sys.exit(1)

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="info"
    )


if __name__ == "__main__":
    main()
