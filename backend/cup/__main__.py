"""
Command line entry point.

    cup check [REFERENCE ...]   check images and print the JSON report
    cup serve                   run the HTTP server
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from docker.errors import DockerException

from cup import __version__
from cup.config.settings import AppConfig, load_config, setup_logging
from cup.docker_monitor.image_source import DockerImageSource
from cup.updates.errors import ConfigError, RegistryError
from cup.updates.report import build_report
from cup.updates.update_checker import UpdateChecker

logger = logging.getLogger("cup")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cup",
        description="Check container images for updates",
    )
    parser.add_argument("--version", action="version", version=f"cup {__version__}")
    parser.add_argument("-c", "--config", help="Path to the JSON config file (default: $CUP_CONFIG)")
    parser.add_argument("-s", "--socket", help="Docker daemon socket or URL")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check for updates and print the JSON report")
    check.add_argument("references", nargs="*", help="Image references to check (default: all local images)")

    serve = subparsers.add_parser("serve", help="Start the HTTP server")
    serve.add_argument("-p", "--port", type=int, default=None, help="Port to listen on (default: $CUP_PORT or 8000)")

    return parser


async def run_check(checker: UpdateChecker, references: Optional[List[str]]) -> dict:
    results = await checker.check(references)
    return build_report(results)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.debug else None)

    try:
        AppConfig.validate()
        config = load_config(args.config)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return 1

    if args.socket:
        config.socket = args.socket

    if args.command == "check":
        checker = UpdateChecker(
            config,
            image_source=DockerImageSource(config.socket),
            http_timeout=AppConfig.HTTP_TIMEOUT,
            http_retries=AppConfig.HTTP_RETRIES,
            include_servers=False,
        )
        try:
            report = asyncio.run(run_check(checker, args.references or None))
        except (RegistryError, ValueError, DockerException) as e:
            logger.error(str(e))
            return 1
        json.dump(report, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    import uvicorn
    from cup.main import create_app

    port = args.port or AppConfig.PORT
    uvicorn.run(create_app(config), host=AppConfig.HOST, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
