#!/usr/bin/env python3
"""
Base command class for the command architecture.

Provides the shared configuration, registry construction and error handling
that all commands inherit.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from argparse import Namespace

from aggregator.config import AggregatorConfig, ConfigManager, get_config_manager
from aggregator.exceptions import AggregatorError, ConfigurationError
from aggregator.session_store import SessionStore
from aggregator.sources.registry import SourceRegistry, build_default_registry

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    A command owns one ConfigManager and one SessionStore for its lifetime,
    so every source it builds shares logins.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize base command.

        Args:
            config_manager: Optional config manager. If None, uses the global one.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._config_manager = config_manager or get_config_manager()
        self.session_store = SessionStore()

    @property
    def config(self) -> AggregatorConfig:
        """Get configuration from the config manager."""
        return self._config_manager.get_config()

    def build_registry(self, source_names: Optional[List[str]] = None,
                       config: Optional[AggregatorConfig] = None) -> SourceRegistry:
        """
        Build the default registry, narrowed to source_names when given.

        Raises:
            KeyError: If a named source is not registered
        """
        registry = build_default_registry(config or self.config, session_store=self.session_store)
        if source_names:
            registry = registry.select(source_names)
        return registry

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """
        Get list of available subcommands for this command.

        Returns:
            List of subcommand names
        """
        methods = []
        for attr_name in dir(self):
            if attr_name.startswith('_') or not callable(getattr(self, attr_name)):
                continue
            if attr_name not in ['execute', 'get_available_subcommands', 'handle_error', 'build_registry']:
                methods.append(attr_name)
        return methods

    def handle_error(self, error: BaseException, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130

        if isinstance(error, ConfigurationError):
            # Bad settings are user errors; no traceback
            self.logger.error(error_msg)
            return 78
        elif isinstance(error, KeyError):
            self.logger.error(f"{context}: {error.args[0]}" if error.args else error_msg)
            return 2
        elif isinstance(error, ValueError):
            self.logger.error(error_msg)
            return 22

        self.logger.error(error_msg, exc_info=True)
        if isinstance(error, AggregatorError):
            self.logger.debug(f"Error details: {error.to_dict()}")
        return 1
