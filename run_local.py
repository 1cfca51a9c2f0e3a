#!/usr/bin/env python3
"""
Local development server runner.

Runs the FastAPI application using uvicorn.

Usage:
    python run_local.py
    python run_local.py --port 8000
    python run_local.py --destinations destinations.json
    python run_local.py --reload  # Auto-reload on code changes
"""

import argparse
import os
import sys
from pathlib import Path

project_root = Path(__file__).parent
src_path = project_root / "src"

try:
    import uvicorn
except ImportError:
    print("ERROR: uvicorn is not installed.")
    print("Please install dependencies: pip install -e .")
    sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="Run Webhook Relay locally with uvicorn"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--destinations",
        type=str,
        default=None,
        help="JSON file with destinations to load at startup"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes (recommended for development)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for uvicorn (default: info)"
    )

    args = parser.parse_args()

    if args.destinations:
        destinations_file = Path(args.destinations).resolve()
        if not destinations_file.exists():
            print(f"ERROR: destinations file not found: {destinations_file}")
            sys.exit(1)
        # Read by Settings when the app module is imported
        os.environ["DESTINATIONS_FILE"] = str(destinations_file)

    print("=" * 60)
    print("Starting Webhook Relay (Local Development)")
    print("=" * 60)
    print(f"Server: http://{args.host}:{args.port}")
    print(f"API Docs: http://{args.host}:{args.port}/docs")
    print(f"Health: http://{args.host}:{args.port}/health")
    print("=" * 60)
    if args.reload:
        print("Auto-reload: ENABLED (code changes will restart server)")
    print()

    # Stay in project root so .env file loads correctly
    uvicorn.run(
        "main:app",
        app_dir=str(src_path),
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
        reload_dirs=[str(src_path)] if args.reload else None
    )


if __name__ == "__main__":
    main()
