"""python -m codeflow — launch the workspace TUI."""

import argparse
import logging

from textual.logging import TextualHandler

from .config import Settings


def parse_args(argv=None, settings=None):
    settings = settings or Settings.from_env()
    parser = argparse.ArgumentParser(description="CodeFlow Workspace — Space/Vault/Log editor")
    parser.add_argument("--api-url", default=settings.api_url, help="Backend base URL")
    parser.add_argument("--token", default=settings.admin_token, help="Bearer token for write requests")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (DEBUG, INFO, ...)")
    args = parser.parse_args(argv)

    settings.api_url = args.api_url.rstrip("/")
    settings.admin_token = args.token
    settings.log_level = args.log_level.upper()
    return settings


def main(argv=None):
    settings = parse_args(argv)
    logging.basicConfig(level=settings.log_level, handlers=[TextualHandler()])

    from .app import CodeFlowApp

    CodeFlowApp(settings).run()


if __name__ == "__main__":
    main()
