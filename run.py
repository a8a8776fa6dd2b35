#!/usr/bin/env python3
"""Start the karaoke API under uvicorn.

    python run.py --reload            # development, auto-reload
    python run.py --host 0.0.0.0 -w 4 # production-ish
"""

import argparse

import uvicorn

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cat & Parrot Ancient Karaoke API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="restart on code changes")
    parser.add_argument("-w", "--workers", type=int, default=1, help="ignored with --reload")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="info")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    print(f"Karaoke API at http://{args.host}:{args.port} (docs at /docs)")
    uvicorn.run(
        "karaoke.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1 if args.reload else args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
