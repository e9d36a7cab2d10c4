#!/usr/bin/env python3
"""
Serve the skynet indexer API with uvicorn.
"""

import argparse
import sys
from pathlib import Path

import uvicorn

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from skynet_indexer.core.config import DEBUG


def main():
    parser = argparse.ArgumentParser(description="Serve the skynet indexer API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    args = parser.parse_args()

    print(f"Starting skynet indexer API on http://{args.host}:{args.port}")
    if DEBUG:
        print(f"Docs available at: http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "skynet_indexer.api.main:app",
        host=args.host,
        port=args.port,
        reload=DEBUG
    )


if __name__ == "__main__":
    main()
