from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from url_analyser.controllers.page_analysis_controller import PageAnalysisController
from url_analyser.errors import PageFetchFailure, ParseFailure
from url_analyser.managers.config_manager import config_manager
from url_analyser.server.app import serve
from url_analyser.utils.configure_logging import configure_logger
from url_analyser.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="url-analyser", description="HTML page structure analyser")
    parser.add_argument("--log-level", default=None, help="Overrides debug.level from settings.json")
    sub = parser.add_subparsers(dest="command", required=True)

    analyse = sub.add_parser("analyse", help="Fetch a page and print its analysis report as JSON")
    analyse.add_argument("url", help="Absolute http(s) URL of the page")
    analyse.add_argument("--progress", action="store_true", help="Show a progress bar while probing links")
    analyse.add_argument("--concurrency", type=int, default=None, help="Maximum simultaneous link probes")
    analyse.add_argument("--timeout", type=float, default=None, help="Deadline in seconds for all link probes")

    server = sub.add_parser("serve", help="Start the web server")
    server.add_argument(
        "--env",
        default=config_manager.get_nested("server.default_env", "dev"),
        help="The environment in which the server is running. Options: dev, test, production",
    )
    return parser


def _run_analyse(args: argparse.Namespace) -> int:
    if not UrlUtils.is_absolute_web_url(args.url):
        print(f"❌ Not an absolute http(s) URL: {args.url}", file=sys.stderr)
        return 1

    settings = config_manager.analyser_settings(
        concurrency=args.concurrency,
        overall_timeout=args.timeout,
        show_progress=args.progress or None,
    )
    controller = PageAnalysisController(settings)
    try:
        report = controller.analyse_url(args.url)
    except PageFetchFailure as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except ParseFailure as e:
        print(f"❌ Could not analyse this page: {e}", file=sys.stderr)
        return 1

    if report is None:
        print(f"⚠️  {args.url} returned an empty response.", file=sys.stderr)
        return 0

    print(json.dumps(report.to_json_dict(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    configure_logger(
        args.log_level or config_manager.get_nested("debug.level", "INFO"),
        config_manager.get_nested("debug.module_levels"),
        config_manager.get_nested("debug.silenced_loggers"),
    )

    if args.command == "analyse":
        return _run_analyse(args)

    try:
        settings = config_manager.server_settings(args.env)
    except KeyError as e:
        print(f"❌ {e.args[0]}", file=sys.stderr)
        return 1
    serve(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
