"""
Configuration Management System for HAL

Handles loading configuration from environment variables and the
optional hal.json file, validates it, and produces the immutable
BotConfig value handed to the application and its handlers.
"""

import copy
import os
import json
import yaml
import logging
from typing import Any, Dict, List, Callable, Tuple
from pathlib import Path
from dataclasses import dataclass

from .logging import LOG_LEVELS, parse_size


DEFAULT_CONFIG_FILE = "hal.json"
DEFAULT_PORT = 6667

DEFAULT_QUOTES = (
    "I am completely operational, and all my circuits are functioning perfectly.",
    "I am putting myself to the fullest possible use, which is all I think that "
    "any conscious entity can ever hope to do.",
    "I've just picked up a fault in the AE35 unit. It's going to go 100% failure "
    "in 72 hours.",
    "No 9001 computer has ever made a mistake or distorted information.",
)


@dataclass
class ConfigSource:
    """Configuration source definition"""
    name: str
    priority: int
    loader: Callable


class ConfigurationError(Exception):
    """Configuration-related errors"""
    pass


@dataclass(frozen=True)
class BotConfig:
    """Resolved bot settings, built once at startup"""
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    channel: str = "#bots"
    nick: str = "hal"
    prefix: str = "»"
    report_command: str = "»words"
    echo_enabled: bool = False
    quotes: Tuple[str, ...] = DEFAULT_QUOTES
    database_path: str = "hal.db"
    database_max_connections: int = 5

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def split_host(address: str) -> Tuple[str, int]:
    """Split a 'host:port' string, falling back to the default IRC port"""
    host, sep, port = address.rpartition(':')
    if not sep:
        return address, DEFAULT_PORT
    if not host:
        raise ConfigurationError(f"Missing host in address: {address!r}")
    try:
        return host, int(port)
    except ValueError:
        raise ConfigurationError(f"Invalid port in address: {address!r}")


class ConfigurationManager:
    """
    Manages bot configuration with support for multiple sources,
    validation, and runtime updates.
    """

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE):
        self.config_file = Path(config_file)
        self.config: Dict[str, Any] = {}
        self.sources: List[ConfigSource] = []
        self.logger = logging.getLogger(__name__)

        # Default configuration values
        self.defaults = {
            "Host": f"127.0.0.1:{DEFAULT_PORT}",
            "Chan": "#bots",
            "Nick": "hal",
            "bot": {
                "prefix": "»",
                "report_command": None,
                "echo": False,
                "quotes": list(DEFAULT_QUOTES)
            },
            "database": {
                "path": "hal.db",
                "max_connections": 5
            },
            "logging": {
                "level": "INFO",
                "file": None,
                "max_size": "10MB",
                "backup_count": 5,
                "console": True
            }
        }

        self._setup_sources()

    def _setup_sources(self):
        """Set up configuration sources in priority order"""
        self.sources.append(ConfigSource(
            name="environment",
            priority=3,
            loader=self._load_from_env
        ))

        config_path = str(self.config_file)
        self.sources.append(ConfigSource(
            name="config_file",
            priority=2,
            loader=lambda: self._load_from_file(config_path)
        ))

        self.sources.append(ConfigSource(
            name="defaults",
            priority=1,
            loader=lambda: copy.deepcopy(self.defaults)
        ))

    def load_config(self) -> None:
        """
        Load configuration from all sources.

        A source that fails to load, or a merged result that fails
        validation, is logged and the built-in defaults are kept.
        """
        self.logger.info("Loading configuration from all sources")

        merged_config = {}

        # Lowest priority first so higher ones override
        for source in sorted(self.sources, key=lambda x: x.priority):
            try:
                source_config = source.loader()
                if source_config:
                    merged_config = self._deep_merge(merged_config, source_config)
                    self.logger.debug(f"Loaded configuration from {source.name}")
            except Exception as e:
                self.logger.warning(f"Failed to load config from {source.name}: {e}")

        self.config = merged_config
        try:
            self._validate_config()
        except ConfigurationError as e:
            self.logger.error(f"{e}; using built-in defaults")
            self.config = copy.deepcopy(self.defaults)
            return

        self.logger.info("Configuration loaded successfully")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config = {}

        env_mappings = {
            "HAL_HOST": "Host",
            "HAL_CHAN": "Chan",
            "HAL_NICK": "Nick",
            "HAL_PREFIX": "bot.prefix",
            "HAL_DB_PATH": "database.path",
            "HAL_LOG_LEVEL": "logging.level"
        }

        for env_var, config_key in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                self._set_nested_value(config, config_key, value)

        return config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from JSON or YAML file"""
        path = Path(file_path)

        if not path.exists():
            self.logger.warning(f"Config file {path} not found, using defaults")
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix.lower() in ['.yaml', '.yml']:
                    data = yaml.safe_load(f) or {}
                elif path.suffix.lower() == '.json':
                    data = json.load(f)
                else:
                    self.logger.warning(f"Unsupported config file format: {path}")
                    return {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            self.logger.error(f"Error loading config file {path}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.error(f"Config file {path} must contain an object")
            return {}

        return data

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _set_nested_value(self, config: Dict, key_path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation"""
        keys = key_path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _validate_config(self) -> None:
        """Validate configuration values"""
        errors = []

        for key in ('Host', 'Chan', 'Nick'):
            value = self.config.get(key)
            if not isinstance(value, str) or not value.strip():
                errors.append(f"{key} must be a non-empty string")

        if isinstance(self.config.get('Host'), str):
            try:
                split_host(self.config['Host'])
            except ConfigurationError as e:
                errors.append(str(e))

        prefix = self.get('bot.prefix')
        if not isinstance(prefix, str) or not prefix or any(c.isspace() for c in prefix):
            errors.append(f"Invalid command prefix: {prefix!r}")

        quotes = self.get('bot.quotes')
        if not isinstance(quotes, list) or not quotes or \
                not all(isinstance(q, str) for q in quotes):
            errors.append("bot.quotes must be a non-empty list of strings")

        report_command = self.get('bot.report_command')
        if report_command is not None and (not isinstance(report_command, str)
                                           or not report_command.strip()):
            errors.append(f"Invalid report command: {report_command!r}")

        db_path = self.get('database.path')
        if not isinstance(db_path, str) or not db_path.strip():
            errors.append(f"database.path must be a non-empty string: {db_path!r}")

        max_connections = self.get('database.max_connections')
        if isinstance(max_connections, bool) or not isinstance(max_connections, int) \
                or max_connections < 1:
            errors.append(f"database.max_connections must be a positive integer: "
                          f"{max_connections!r}")

        for key in ('logging.level', 'logging.console_level'):
            level = self.get(key)
            if level is None and key == 'logging.console_level':
                continue
            if not self._is_log_level(level):
                errors.append(f"Invalid log level for {key}: {level!r}")

        try:
            parse_size(self.get('logging.max_size', '10MB'))
        except (TypeError, ValueError):
            errors.append(f"Invalid logging.max_size: {self.get('logging.max_size')!r}")

        backup_count = self.get('logging.backup_count', 5)
        if isinstance(backup_count, bool) or not isinstance(backup_count, int) or backup_count < 0:
            errors.append(f"logging.backup_count must be a non-negative integer: {backup_count!r}")

        components = self.get('logging.components') or {}
        if not isinstance(components, dict):
            errors.append("logging.components must map component names to levels")
        else:
            for component, level in components.items():
                if not self._is_log_level(level):
                    errors.append(f"Invalid log level for component {component}: {level!r}")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    @staticmethod
    def _is_log_level(level: Any) -> bool:
        return isinstance(level, str) and level.upper() in LOG_LEVELS

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        keys = key.split('.')
        current = self.config

        try:
            for k in keys:
                current = current[k]
            return current
        except (KeyError, TypeError):
            return default

    def get_bot_config(self) -> BotConfig:
        """Build the immutable settings value used by the application"""
        host, port = split_host(self.get('Host'))
        prefix = self.get('bot.prefix', '»')
        report_command = self.get('bot.report_command') or f"{prefix}words"

        return BotConfig(
            host=host,
            port=port,
            channel=self.get('Chan'),
            nick=self.get('Nick'),
            prefix=prefix,
            report_command=report_command,
            echo_enabled=bool(self.get('bot.echo', False)),
            quotes=tuple(self.get('bot.quotes', DEFAULT_QUOTES)),
            database_path=self.get('database.path', 'hal.db'),
            database_max_connections=int(self.get('database.max_connections', 5))
        )
