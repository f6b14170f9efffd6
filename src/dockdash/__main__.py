"""Command line entry point: python -m dockdash."""

import argparse
import curses
import logging
import sys
from typing import List, Optional

from . import __version__, configure_logging
from .backend import DockerBackend, DockerConnectionError
from .config import ConfigManager
from .main import SourceClosedError, run
from .ui import DisplayInitError

logger = logging.getLogger("dockdash")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dockdash",
        description="Live terminal dashboard of running Docker containers.",
    )
    parser.add_argument("--docker-endpoint", metavar="URL",
                        help="Docker connection endpoint (default: from config, unix://var/run/docker.sock)")
    parser.add_argument("--log-file", metavar="PATH", help="Path to log file (default: no logging)")
    parser.add_argument("--config", metavar="PATH", help="Config file (default: ~/.config/dockdash/config.yaml)")
    parser.add_argument("--stats-interval", type=float, metavar="SECONDS",
                        help="Seconds between resource samples")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = ConfigManager(args.config).get_config()
    if args.docker_endpoint:
        config.docker.endpoint = args.docker_endpoint
    if args.log_file:
        config.logging.file_path = args.log_file
    if args.stats_interval is not None:
        config.docker.stats_interval = args.stats_interval

    try:
        configure_logging(config.logging.file_path, config.logging.level,
                          config.logging.max_size_mb, config.logging.backup_count)
    except OSError as e:
        print(f"dockdash: cannot open log file: {e}", file=sys.stderr)
        return 1

    try:
        backend = DockerBackend(config.docker.endpoint, config.docker.timeout)
    except DockerConnectionError as e:
        logger.critical(str(e))
        print(f"dockdash: {e}", file=sys.stderr)
        return 1

    try:
        return curses.wrapper(run, config, backend)
    except KeyboardInterrupt:
        return 0
    except (DisplayInitError, curses.error) as e:
        logger.critical(f"Display initialization failed: {e}")
        print(f"dockdash: cannot initialize terminal: {e}", file=sys.stderr)
        return 1
    except SourceClosedError as e:
        logger.critical(str(e))
        print(f"dockdash: {e}", file=sys.stderr)
        return 1
    finally:
        backend.close()


if __name__ == "__main__":
    sys.exit(main())
