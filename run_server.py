#!/usr/bin/env python3
"""FastAPI server entry point for the deep search service."""

import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Deep Search FastAPI Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--cache-dir", help="Override CACHE_DIR for search result files")
    parser.add_argument(
        "--sweep-interval",
        type=int,
        help="Override CACHE_SWEEP_INTERVAL_SECONDS (0 disables the background sweep)",
    )

    args = parser.parse_args()

    # Exported so reload workers see the same settings
    if args.cache_dir:
        os.environ["CACHE_DIR"] = args.cache_dir
    if args.sweep_interval is not None:
        os.environ["CACHE_SWEEP_INTERVAL_SECONDS"] = str(args.sweep_interval)

    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )
