"""CLI entry point for the llm-tier-router."""

from __future__ import annotations

import argparse
import signal
import sys
import threading

from . import __version__
from .config import RouterConfig
from .server import create_server, shutdown_router


def main():
    parser = argparse.ArgumentParser(
        description="LLM Tier Router: route chat completions between a "
                    "default and a power model"
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to configuration YAML file (default: read environment)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Override listen host",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Override listen port",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging of classification decisions",
    )
    args = parser.parse_args()

    if args.config:
        try:
            config = RouterConfig.from_yaml(args.config)
        except FileNotFoundError:
            print(f"Config file not found: {args.config}", file=sys.stderr)
            sys.exit(1)
    else:
        config = RouterConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.debug:
        config.observability.debug = True
        config.observability.log_level = "DEBUG"

    errors = config.validate()
    if errors:
        print("Configuration errors:", file=sys.stderr)
        for err in errors:
            print(f"   - {err}", file=sys.stderr)
        sys.exit(1)

    try:
        server, router = create_server(config)
    except OSError as e:
        print(f"Failed to start server: {e}", file=sys.stderr)
        sys.exit(1)

    def shutdown(signum, frame):
        print("\nShutting down...")
        # shutdown() blocks until serve_forever returns; call it off-thread
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        print(f"LLM Tier Router v{__version__} listening on http://{config.host}:{config.port}")
        print(f"Default: {config.default_model.provider}/{config.default_model.model}")
        print(f"Power:   {config.power_model.provider}/{config.power_model.model}")
        print(f"Threshold: score >= {config.thresholds.min_score_for_power}")
        print("---")
        server.serve_forever()
    finally:
        server.server_close()
        shutdown_router(server, router)


if __name__ == "__main__":
    main()
