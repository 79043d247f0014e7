"""CLI entrypoint for running the API server."""
from __future__ import annotations

import argparse
import os

from . import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the article generation API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind (default: 8000)")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    parser.add_argument("--no-worker", action="store_true", dest="no_worker", help="Do not start the job worker")
    args = parser.parse_args()

    # The reloader parent process must not run a second worker.
    reloader_parent = args.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true"
    app = create_app(start_worker=not (args.no_worker or reloader_parent))

    if not reloader_parent:
        print(f"Server running: API on http://{args.host}:{args.port}", flush=True)

    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":  # pragma: no cover
    main()
