"""
Command Line Entry Point
========================

    ecowitt-relay [-debug] [-config PATH] [-ttl DURATION]
                  [-restart-policy activity|fixed] [-listen ADDR]

Flags override RELAY_* environment variables (and .env). Exit status is 1 on
any startup failure.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn
from dotenv import load_dotenv

from ecowitt_relay.config import Settings, load_config_file
from ecowitt_relay.errors import ConfigError
from ecowitt_relay.main import create_app
from ecowitt_relay.services import RESTART_POLICIES
from ecowitt_relay.utils.validation import parse_duration

logger = logging.getLogger(__name__)


MAIN_USAGE = """ecowitt-relay accepts a payload from an ecowitt weather station and presents the
data on a /metrics endpoint to present to a prometheus scraper."""


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def _duration(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _attach_ttl_values(argv: Sequence[str]) -> list[str]:
    """Glue "-ttl -1s" into "-ttl=-1s" so argparse does not read -1s as a flag."""
    args = list(argv)
    joined = []
    i = 0
    while i < len(args):
        if args[i] in ("-ttl", "--ttl") and i + 1 < len(args) and args[i + 1].startswith("-"):
            joined.append(f"{args[i]}={args[i + 1]}")
            i += 2
            continue
        joined.append(args[i])
        i += 1
    return joined


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecowitt-relay",
        description=MAIN_USAGE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-debug", "--debug", action="store_true", default=defaults.debug,
        help="Show debug logs",
    )
    parser.add_argument(
        "-config", "--config", dest="config_path", default=defaults.config_path,
        help=f"Json config file (default: {defaults.config_path})",
    )
    parser.add_argument(
        "-ttl", "--ttl", type=_duration, default=defaults.ttl,
        help="TTL before the app restarts, e.g. 10m (default no restart)",
    )
    parser.add_argument(
        "-restart-policy", "--restart-policy", dest="restart_policy",
        choices=RESTART_POLICIES, default=defaults.restart_policy,
        help="How the ttl is applied (default: %(default)s)",
    )
    parser.add_argument(
        "-listen", "--listen", default=defaults.listen,
        help="Address to listen on (default: %(default)s)",
    )
    parser.add_argument("positional", nargs="*", help=argparse.SUPPRESS)
    return parser


def parse_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """
    Merge environment settings with command line flags.

    Raises:
        ConfigError: Bad environment value or unexpected positional arguments
    """
    defaults = Settings.from_env()
    parser = build_parser(defaults)
    args = parser.parse_args(_attach_ttl_values(sys.argv[1:] if argv is None else argv))

    if args.positional:
        parser.print_usage(sys.stderr)
        raise ConfigError("no positional arguments expected")

    return defaults.model_copy(update={
        "debug": args.debug,
        "config_path": args.config_path,
        "ttl": args.ttl,
        "restart_policy": args.restart_policy,
        "listen": args.listen,
    })


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()

    try:
        settings = parse_settings(argv)
    except ConfigError as e:
        configure_logging(False)
        logger.error(f"failed: {e}")
        return 1

    configure_logging(settings.debug)

    try:
        logger.info(f"loading config {settings.config_path}")
        file_config = load_config_file(settings.config_path)
        host, port = settings.bind_address()
        app = create_app(settings, file_config=file_config)
    except ConfigError as e:
        logger.error(f"failed: {e}")
        return 1

    logger.info(f"starting server address={settings.listen}")
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_config=None,
        log_level="debug" if settings.debug else "info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
