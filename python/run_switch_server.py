#!/usr/bin/env python3
"""
Launch the switch server with command-line overrides.

An optional .env is looked up from the current working directory upward,
so the installed hotswap-server entry point reads the .env of the directory
it is started from. Variables already in the environment win over .env.
"""

from __future__ import annotations

import argparse
import os

from dotenv import find_dotenv, load_dotenv


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    from variants import available_variants

    parser = argparse.ArgumentParser(
        description="Run the hotswap middleware switch server.",
    )
    parser.add_argument("--host", default=None, help="Bind host (default: 0.0.0.0).")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: 8080).")
    parser.add_argument(
        "--initial-variant",
        default=None,
        choices=available_variants(),
        help="Middleware active at startup (default: quiet).",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: info).")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    load_dotenv(find_dotenv(usecwd=True))
    args = parse_args(argv)

    if args.host is not None:
        os.environ["HOTSWAP_HOST"] = args.host
    if args.port is not None:
        os.environ["HOTSWAP_PORT"] = str(args.port)
    if args.initial_variant is not None:
        os.environ["HOTSWAP_INITIAL_VARIANT"] = args.initial_variant
    if args.log_level is not None:
        os.environ["HOTSWAP_LOG_LEVEL"] = args.log_level

    from switch_server import load_runtime_config, main as run_server

    run_server(load_runtime_config())


if __name__ == "__main__":
    main()
