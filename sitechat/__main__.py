#!/usr/bin/env python3
"""
SiteChat - Main Entry Point

Loads the configuration, sets up logging, builds the service and runs one
command.
"""

import sys
import json
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from sitechat.core.config import ConfigManager
from sitechat.core.logging import setup_logging, get_logger
from sitechat.core.base import SiteChatError
from sitechat.cli.arguments import CLIManager
from sitechat.registry import FileWebsiteRegistry, InMemoryUserDirectory
from sitechat.storage.content_store import FileContentStore
from sitechat.storage.dialogue_store import FileDialogueStore
from sitechat.ai.model_client import GeminiClient
from sitechat.service import SiteChatService


def build_service(config: Dict[str, Any]) -> SiteChatService:
    """Create the service with file-backed stores and the Gemini client"""
    base_path = config['storage']['base_path']
    registry = FileWebsiteRegistry.from_config(
        config.get('websites', []), str(Path(base_path) / "websites.json")
    )
    return SiteChatService(
        config,
        registry=registry,
        users=InMemoryUserDirectory.from_config(config.get('users', [])),
        content_store=FileContentStore(config),
        dialogue_store=FileDialogueStore(config),
        model_client=GeminiClient(config)
    )


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run_command(args, service: SiteChatService) -> int:
    """Execute one parsed command against the service"""
    orchestrator = service.orchestrator

    if args.command == "websites":
        _print([
            {'id': w.id, 'name': w.name, 'url': w.url, 'status': w.crawl_status.value}
            for w in service.registry.all()
        ])
        return 0

    if args.command in ("crawl", "recrawl"):
        if args.command == "crawl":
            outcome = await orchestrator.crawl(args.website_id)
        else:
            outcome = await orchestrator.recrawl(args.website_id)
        _print({
            'website_id': outcome.website_id,
            'status': outcome.status.value,
            'pages_crawled': outcome.pages_crawled,
            'warnings': outcome.warnings,
            'error': outcome.error_message
        })
        return 0 if outcome.success else 1

    if args.command == "status":
        _print(await service.get_crawl_status(args.website_id))
        return 0

    if args.command == "stop":
        _print(await service.stop_crawl(args.website_id))
        return 0

    if args.command == "ask":
        result = await service.send_message(args.user_id, args.website_id, args.question)
        _print(result)
        return 1 if result['degraded'] else 0

    if args.command == "summary":
        _print(await service.summarize_websites(args.website_ids))
        return 0

    if args.command == "history":
        _print(await service.list_dialogue(args.user_id, args.website_id, args.page, args.page_size))
        return 0

    if args.command == "delete":
        await service.delete_dialogue(args.record_id, args.user_id)
        _print({'deleted': args.record_id})
        return 0

    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    cli_manager = CLIManager()
    args = cli_manager.parse_arguments(argv)

    config_manager = ConfigManager(args.config)
    try:
        config_manager.load_config()
        if args.pool_capacity is not None:
            config_manager.crawl_config.pool_capacity = args.pool_capacity
        config_manager.validate_config(require_model=args.command in ("ask", "summary"))
    except SiteChatError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logging_config = config_manager.logging_config
    setup_logging(
        level=args.log_level or logging_config.level,
        log_file=logging_config.file,
        max_size=logging_config.max_size,
        backup_count=logging_config.backup_count
    )
    logger = get_logger()

    try:
        service = build_service(config_manager.as_dict())
        async with service:
            return await run_command(args, service)
    except (SiteChatError, ValueError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cli() -> None:
    """Console script entry point"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    cli()
