#!/usr/bin/env python3
"""
Command endpoints for the article aggregator.

Each top-level CLI command is handled by a dedicated command class.
"""

from typing import Dict, Optional, Type

from aggregator.config import ConfigManager
from .base import BaseCommand
from .news import NewsCommand
from .sources import SourcesCommand

# Command registry for easy extension
COMMANDS: Dict[str, Type[BaseCommand]] = {
    'news': NewsCommand,
    'sources': SourcesCommand,
}


def get_command(command_name: str, config_manager: Optional[ConfigManager] = None) -> BaseCommand:
    """Get a command instance by name."""
    if command_name not in COMMANDS:
        available = ', '.join(COMMANDS.keys())
        raise ValueError(f"Unknown command '{command_name}'. Available: {available}")

    command_class = COMMANDS[command_name]
    return command_class(config_manager=config_manager)

