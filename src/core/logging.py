"""
Logging Configuration for HAL

Provides centralized logging setup with structured logging,
file rotation, and component-specific log levels.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional, Any
import structlog


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def parse_size(size_str: Any) -> int:
    """
    Parse size string like '10MB' to bytes.

    Raises:
        ValueError: If the size is not an integer with an optional KB/MB/GB suffix
    """
    size_str = str(size_str).strip().upper()
    if size_str.endswith('KB'):
        return int(size_str[:-2]) * 1024
    elif size_str.endswith('MB'):
        return int(size_str[:-2]) * 1024 * 1024
    elif size_str.endswith('GB'):
        return int(size_str[:-2]) * 1024 * 1024 * 1024
    else:
        return int(size_str)


class HalLogger:
    """
    Centralized logging configuration for HAL
    """

    def __init__(self, config: Dict):
        self.config = config
        self.loggers: Dict[str, logging.Logger] = {}
        self._setup_logging()

    def _setup_logging(self):
        """Set up logging configuration"""
        log_config = self.config.get('logging', {}) or {}
        log_level = str(log_config.get('level', 'INFO')).upper()
        log_file = log_config.get('file')
        max_size = log_config.get('max_size', '10MB')
        backup_count = log_config.get('backup_count', 5)
        console_enabled = log_config.get('console', True)
        console_level = str(log_config.get('console_level', log_level)).upper()

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer()
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level))
        root_logger.handlers.clear()

        # File handler with rotation
        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=parse_size(max_size),
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            file_handler.setLevel(getattr(logging, log_level))
            root_logger.addHandler(file_handler)

        if console_enabled:
            console_handler = logging.StreamHandler(sys.stdout)
            console_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            console_handler.setLevel(getattr(logging, console_level))
            root_logger.addHandler(console_handler)

        # Component-specific log levels, e.g. {"dispatcher": "DEBUG"}
        component_levels = log_config.get('components', {}) or {}
        for component, level in component_levels.items():
            component_logger = logging.getLogger(f'hal.{component}')
            component_logger.setLevel(getattr(logging, str(level).upper()))

        self._configure_third_party_loggers()

    def _configure_third_party_loggers(self):
        """Configure third-party library loggers to reduce noise"""
        logging.getLogger('asyncio').setLevel(logging.WARNING)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger for a specific component"""
        if name not in self.loggers:
            full_name = f'hal.{name}' if not name.startswith('hal') else name
            self.loggers[name] = logging.getLogger(full_name)

        return self.loggers[name]

    def get_structured_logger(self, name: str) -> structlog.stdlib.BoundLogger:
        """Get a structured logger for a specific component"""
        return structlog.get_logger(f'hal.{name}')


# Global logger instance
_logger_instance: Optional[HalLogger] = None


def initialize_logging(config: Dict) -> HalLogger:
    """Initialize the global logging system"""
    global _logger_instance
    _logger_instance = HalLogger(config)
    return _logger_instance


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    if _logger_instance is None:
        # Fallback to basic logging if not initialized
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        return logging.getLogger(f'hal.{name}')

    return _logger_instance.get_logger(name)


def get_structured_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    if _logger_instance is None:
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.JSONRenderer()
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    return structlog.get_logger(f'hal.{name}')
