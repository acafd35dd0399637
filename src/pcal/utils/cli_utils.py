"""
Utility functions and decorators for CLI argument handling.
"""

import argparse
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from pcal.config.types import AppConfig
from pcal.models.event import Frequency


@dataclass
class CLIContext:
    """Context object for CLI command execution."""
    args: argparse.Namespace
    logger: logging.Logger
    config: AppConfig
    parser: argparse.ArgumentParser

class CommandCategory(Enum):
    """Categories for organizing commands."""
    EVENT = auto()
    LIST = auto()
    TRANSFER = auto()
    CALENDAR = auto()

@dataclass
class CommandMetadata:
    """Metadata for command registration."""
    name: str
    help_text: str
    category: CommandCategory
    handler: Callable[[CLIContext], int]
    options: list[dict[str, Any]]
    parent_command: str | None = None

    @property
    def key(self) -> str:
        """Registry key, e.g. ``list`` or ``calendar list``."""
        return command_key(self.name, self.parent_command)

def command_key(name: str, parent_command: str | None = None) -> str:
    return f"{parent_command} {name}" if parent_command else name

def _positive(value: int) -> bool:
    return value > 0

class CLIOptionFactory:
    """Factory for creating common CLI options with consistent validation."""

    @staticmethod
    def create_format_option() -> dict[str, Any]:
        return {
            'name': '--format',
            'choices': ['text', 'json'],
            'default': 'text',
            'help': 'Output format: human-readable text or machine-readable JSON (default: text)'
        }

    @staticmethod
    def create_event_id_option(help_text: str = 'Event id or a unique prefix of it') -> dict[str, Any]:
        return {
            'name': 'id',
            'help': help_text
        }

    @staticmethod
    def create_overwrite_option() -> dict[str, Any]:
        return {
            'name': '--overwrite',
            'action': 'store_true',
            'help': 'Replace an identical existing event instead of failing'
        }

    @staticmethod
    def create_event_options(for_edit: bool = False) -> list[dict[str, Any]]:
        """Options describing an event; for edit every field is optional."""
        options: list[dict[str, Any]] = []
        if for_edit:
            options.extend([
                {'name': '--title', 'help': 'New title'},
                {'name': '--start', 'help': 'New start, e.g. "2024-06-15 14:00" or "15/06/2024 14:00"'},
            ])
        else:
            options.extend([
                {'name': 'title', 'help': 'Event title'},
                {'name': 'start', 'help': 'Start, e.g. "2024-06-15 14:00" or "15/06/2024 14:00"'},
            ])
        options.extend([
            {'name': '--end', 'help': 'End date-time'},
            {
                'name': '--duration',
                'type': int,
                'help': 'Duration in minutes (default: from configuration)',
                'validator': lambda x: x >= 0
            },
            {'name': '--location', 'help': 'Where the event takes place'},
            {'name': '--description', 'help': 'Free text notes'},
        ])
        return options

    @staticmethod
    def create_recurrence_options() -> list[dict[str, Any]]:
        return [
            {
                'name': '--freq',
                'type': str.upper,
                'choices': [f.value for f in Frequency],
                'help': 'Repeat the event: DAILY, WEEKLY, MONTHLY or YEARLY'
            },
            {
                'name': '--interval',
                'type': int,
                'help': 'Repeat every N periods (default: 1)',
                'validator': _positive
            },
            {
                'name': '--count',
                'type': int,
                'help': 'Stop after N occurrences',
                'validator': _positive
            },
            {
                'name': '--until',
                'help': 'Last day (or date-time) an occurrence may start'
            }
        ]

    @staticmethod
    def create_date_filter_options() -> list[dict[str, Any]]:
        return [
            {'name': '--today', 'action': 'store_true', 'help': 'Only events happening today'},
            {'name': '--week', 'action': 'store_true', 'help': 'Only events happening this week'},
            {'name': '--month', 'action': 'store_true', 'help': 'Only events happening this month'},
            {
                'name': '--from',
                'dest': 'from_date',
                'help': 'First day to show, YYYY-MM-DD or DD/MM/YYYY'
            },
            {
                'name': '--until',
                'dest': 'until_date',
                'help': 'Last day to show (inclusive), YYYY-MM-DD or DD/MM/YYYY'
            }
        ]

class CommandRegistry:
    """Registry for CLI commands with metadata."""

    _commands: dict[str, CommandMetadata] = {}

    @classmethod
    def register(cls,
                name: str,
                help_text: str,
                category: CommandCategory,
                options: list[dict[str, Any]] | None = None,
                parent_command: str | None = None) -> Callable[[Callable[[CLIContext], int]], Callable[[CLIContext], int]]:
        """Register a command handler."""
        def decorator(handler: Callable[[CLIContext], int]) -> Callable[[CLIContext], int]:
            metadata = CommandMetadata(
                name=name,
                help_text=help_text,
                category=category,
                handler=handler,
                options=options or [],
                parent_command=parent_command
            )

            cls._commands[metadata.key] = metadata
            return handler
        return decorator

    @classmethod
    def get_command(cls, key: str) -> CommandMetadata | None:
        """Get command metadata by key."""
        return cls._commands.get(key)

    @classmethod
    def all_commands(cls) -> list[CommandMetadata]:
        return list(cls._commands.values())

class ArgumentValidator:
    """Validator for CLI arguments."""

    @staticmethod
    def validate_option(option: dict[str, Any], value: Any) -> bool:
        """Validate a single option value."""
        if 'validator' not in option:
            return True

        try:
            return bool(option['validator'](value))
        except (TypeError, ValueError):
            return False

    @staticmethod
    def validate_args(args: argparse.Namespace, command: CommandMetadata) -> list[str]:
        """Validate all arguments for a command."""
        errors = []

        for option in command.options:
            dest = option.get('dest') or option['name'].lstrip('-').replace('-', '_')
            value = getattr(args, dest, None)
            if value is not None and not ArgumentValidator.validate_option(option, value):
                errors.append(f"Invalid value for {option['name']}: {value}")

        return errors

def add_common_options(parser: argparse.ArgumentParser) -> None:
    """Add common global options to a parser."""
    parser.add_argument(
        '-c', '--calendar',
        help='Calendar to work on (default: from configuration)'
    )
    parser.add_argument(
        '--config-dir',
        help='Directory holding config.yaml (default: $PCAL_CONFIG_DIR or ~/.config/pcal)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging output'
    )
    parser.add_argument(
        '--log-file',
        help='Path to write log output (default: logs to stderr only)'
    )

class CLIBuilder:
    """Builder for constructing CLI parsers with consistent formatting."""

    # Custom option fields that should not be passed to argparse
    _CUSTOM_FIELDS = {'validator'}

    def __init__(self, description: str, prog: str | None = None):
        """Initialize CLI builder."""
        self.parser = argparse.ArgumentParser(prog=prog, description=description)
        self.subparsers = self.parser.add_subparsers(dest='command', required=True)
        self._parent_parsers: dict[str, argparse._SubParsersAction[Any]] = {}
        self._parent_help: dict[str, str] = {}

        add_common_options(self.parser)

    def add_group_help(self, name: str, help_text: str) -> None:
        """Help text for a parent command created on demand."""
        self._parent_help[name] = help_text

    def add_command(self, command: CommandMetadata) -> None:
        """Add a command to the parser."""
        if command.parent_command:
            if command.parent_command not in self._parent_parsers:
                parent_parser = self.subparsers.add_parser(
                    command.parent_command,
                    help=self._parent_help.get(
                        command.parent_command, f"{command.parent_command.capitalize()} commands"
                    )
                )
                parent_subparsers = parent_parser.add_subparsers(
                    dest=f"{command.parent_command}_subcommand",
                    required=True
                )
                self._parent_parsers[command.parent_command] = parent_subparsers

            parser = self._parent_parsers[command.parent_command].add_parser(
                command.name,
                help=command.help_text
            )
        else:
            parser = self.subparsers.add_parser(
                command.name,
                help=command.help_text
            )

        for option in command.options:
            if 'name' not in option:
                continue

            option_copy = option.copy()
            name = option_copy.pop('name')
            option_dict = {k: v for k, v in option_copy.items() if k not in self._CUSTOM_FIELDS}
            parser.add_argument(name, **option_dict)

        parser.set_defaults(func=command.handler, command_key=command.key)

    def build(self) -> argparse.ArgumentParser:
        """Build and return the parser."""
        return self.parser

def create_command_group(name: str, help_text: str, category: CommandCategory | None = None) -> Callable[[type[Any]], type[Any]]:
    """Create a command group decorator."""
    def decorator(cls: type[Any]) -> type[Any]:
        """Decorate a class to create a command group."""
        cls._command_group_metadata = {
            'name': name,
            'help_text': help_text,
            'category': category or CommandCategory.EVENT,
            'options': []
        }
        return cls
    return decorator
