"""CLI tool for racefetch: fetch sitemap XML from the command line.

Usage:
    python -m racefetch.cli sitemap https://example.com/sitemap.xml
    python -m racefetch.cli sitemap example.com/sitemap_index.xml --overall-timeout 30
    python -m racefetch.cli -o json sitemap https://example.com/sitemap.xml
    python -m racefetch.cli sitemap https://example.com/sitemap.xml -o json
    python -m racefetch.cli serve --host 0.0.0.0 --port 8000
"""

import argparse
import asyncio
import json
import logging
import signal
import sys

EXIT_RACE_FAILED = 1
EXIT_BAD_INPUT = 2
EXIT_INTERRUPTED = 130


def _setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def _cmd_sitemap(args) -> int:
    """Fetch one sitemap through the strategy race."""
    from racefetch.config import settings
    from racefetch.core.cancellation import CancellationToken
    from racefetch.core.exceptions import ConfigurationError, RaceFailure
    from racefetch.services.race import RaceConfig
    from racefetch.services.sitemap import fetch_sitemap_text

    token = CancellationToken(name="cli")
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # Windows: Ctrl-C falls back to KeyboardInterrupt

    config = RaceConfig(
        per_strategy_timeout=args.per_strategy_timeout or settings.PER_STRATEGY_TIMEOUT,
        overall_timeout=args.overall_timeout or settings.OVERALL_TIMEOUT,
        external_cancellation=token,
    )

    try:
        result = await fetch_sitemap_text(args.url, config)
    except ConfigurationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except RaceFailure as e:
        if args.output == "json":
            print(json.dumps(e.to_dict(), indent=2, ensure_ascii=False))
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_INTERRUPTED if e.cause == "externally-cancelled" else EXIT_RACE_FAILED
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    if args.output == "json":
        print(json.dumps(
            {
                "url": args.url,
                "winner": result.winner,
                "elapsed": round(result.elapsed, 3),
                "text": result.text,
            },
            indent=2,
            ensure_ascii=False,
        ))
    else:
        print(result.text)

    print(f"\n{result.winner} won in {result.elapsed:.2f}s", file=sys.stderr)
    return 0


def _cmd_serve(args) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "racefetch.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,  # racefetch.main configures logging itself
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="racefetch",
        description="racefetch CLI: fetch sitemap XML by racing retrieval strategies",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "-o", "--output", default="xml",
        choices=["xml", "json"],
        help="Output format (default: xml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # --- sitemap ---
    sitemap_parser = subparsers.add_parser("sitemap", help="Fetch a sitemap XML document")
    sitemap_parser.add_argument("url", help="Sitemap URL")
    sitemap_parser.add_argument(
        "--per-strategy-timeout", type=float, default=None,
        help="Seconds before a single strategy is abandoned",
    )
    sitemap_parser.add_argument(
        "--overall-timeout", type=float, default=None,
        help="Seconds before the whole race is abandoned",
    )
    # Also accepted after the subcommand; SUPPRESS keeps a value given before it.
    sitemap_parser.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
        help="Enable debug logging",
    )
    sitemap_parser.add_argument(
        "-o", "--output", choices=["xml", "json"], default=argparse.SUPPRESS,
        help="Output format (default: xml)",
    )

    # --- serve ---
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _setup_logging(args.verbose)

    if args.command == "sitemap":
        sys.exit(asyncio.run(_cmd_sitemap(args)))
    if args.command == "serve":
        sys.exit(_cmd_serve(args))


if __name__ == "__main__":
    main()
