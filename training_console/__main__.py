"""Entry point for the training console CLI."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__
from .log import logger, setup_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="training-console",
        description="Step-by-step training console with live terminal sessions",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"training-console {__version__}",
    )
    parser.add_argument(
        "--server",
        type=str,
        help="Content server URL (overrides preferences)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Preferences file (default: ~/.training-console/preferences.yaml)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at debug level",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log file (default: ~/.training-console/console.log)",
    )

    sub = parser.add_subparsers(dest="command")
    serve = sub.add_parser("serve", help="Run the content server")
    serve.add_argument(
        "--scenario",
        type=Path,
        help="Scenario directory (default: $SCENARIO_PATH or /scenarios)",
    )
    serve.add_argument(
        "--port",
        type=int,
        help="Port to listen on (default: $PORT or 8080)",
    )
    serve.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface to bind (default: 0.0.0.0)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the training console (or its content server)."""
    args = _build_parser().parse_args(argv)

    if args.command == "serve":
        from .server import main as serve_main

        try:
            serve_main(scenario=args.scenario, port=args.port, host=args.host)
        except KeyboardInterrupt:
            pass
        return

    log_path = setup_logging(debug=args.debug, log_file=args.log_file)

    from .preferences import load_preferences

    prefs = load_preferences(args.config)
    if args.server:
        prefs.server.url = args.server
    logger.info("starting console against %s (log: %s)", prefs.server.url, log_path)

    try:
        from .app import run_app

        run_app(prefs)
    except (KeyboardInterrupt, SystemExit):
        pass
    except Exception:
        logger.debug("Fatal error in training-console", exc_info=True)
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
