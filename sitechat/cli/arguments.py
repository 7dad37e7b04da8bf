"""
Command Line Argument Parsing for SiteChat

Handles the crawl, status, chat and summary subcommands plus
configuration overrides.
"""

import argparse
from typing import List, Optional

from sitechat import __version__


class CLIManager:
    """
    Command line interface manager for SiteChat

    Builds the argument parser, validates parsed arguments and provides
    help documentation.
    """

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Global options plus one subparser per command"""
        parser = argparse.ArgumentParser(
            prog="sitechat",
            description="Crawl websites and answer questions about their content",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_epilog()
        )

        config_group = parser.add_argument_group("Configuration")
        config_group.add_argument(
            "--config",
            default="config/config.yaml",
            help="YAML or JSON configuration file"
        )
        config_group.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Console log level (overrides logging.level)"
        )
        config_group.add_argument(
            "--pool-capacity",
            type=int,
            help="Number of browsers that may run at once"
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"SiteChat v{__version__}"
        )

        commands = parser.add_subparsers(dest="command", metavar="COMMAND")
        commands.required = True

        crawl = commands.add_parser("crawl", help="Crawl a website and wait for the result")
        crawl.add_argument("website_id")

        recrawl = commands.add_parser("recrawl", help="Replace a website's content with a fresh crawl")
        recrawl.add_argument("website_id")

        status = commands.add_parser("status", help="Show the crawl status of a website")
        status.add_argument("website_id")

        stop = commands.add_parser("stop", help="Mark an interrupted crawl as failed")
        stop.add_argument("website_id")

        commands.add_parser("websites", help="List configured websites")

        ask = commands.add_parser("ask", help="Ask a question about a crawled website")
        ask.add_argument("user_id")
        ask.add_argument("website_id")
        ask.add_argument("question", nargs="+")

        summary = commands.add_parser("summary", help="Summarize the latest crawled page of websites")
        summary.add_argument("website_ids", nargs="+", metavar="website_id")

        history = commands.add_parser("history", help="List a user's questions and answers")
        history.add_argument("user_id")
        history.add_argument("--website", dest="website_id", help="Only show this website")
        history.add_argument("--page", type=int, default=1)
        history.add_argument("--page-size", type=int, default=20)

        delete = commands.add_parser("delete", help="Delete one of a user's dialogue records")
        delete.add_argument("record_id")
        delete.add_argument("user_id")

        return parser

    def _get_epilog(self) -> str:
        return """
Examples:
  # Crawl the website registered as "docs" in config/config.yaml
  python -m sitechat crawl docs

  # Ask a question about it
  python -m sitechat ask alice docs "Which languages are supported?"

  # Page through the history of one user
  python -m sitechat history alice --website docs --page 2

Notes:
  - Websites and users are declared in the configuration file
  - Asking questions and summarizing require the GEMINI_API_KEY environment variable
  - Crawled documents and dialogue history are stored under storage.base_path
"""

    def parse_arguments(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse and validate arguments

        Args:
            args: Argument list; sys.argv is used when None
        """
        namespace = self.parser.parse_args(args)
        self.validate_arguments(namespace)
        return namespace

    def validate_arguments(self, args: argparse.Namespace) -> bool:
        """Reject values argparse cannot check by itself; exits through parser.error()"""
        if args.pool_capacity is not None and args.pool_capacity <= 0:
            self.parser.error("Pool capacity must be greater than 0")

        if args.command == "history":
            if args.page < 1:
                self.parser.error("Page must be at least 1")
            if args.page_size < 1:
                self.parser.error("Page size must be at least 1")

        if args.command == "ask":
            args.question = " ".join(args.question).strip()
            if not args.question:
                self.parser.error("Question must not be empty")

        return True

