#!/usr/bin/env python3
"""
Centralized Logging Manager for the PocketBase SDK

All SDK loggers live under the "pocketbase" namespace. File output is
opt-in through POCKETBASE_LOG_DIR so the SDK never writes to disk unasked.
"""

import os
import logging
import logging.handlers
import json
from pathlib import Path
from typing import Optional, Dict, Any, Union


ROOT_LOGGER_NAME = "pocketbase"


class LoggingManager:
    """
    Manages logging for all PocketBase SDK components.

    Features:
    - Component-specific loggers (pocketbase.<component>.<name>)
    - Optional rotating log files per component
    - Shared error.log for ERROR and above
    - Debug mode support via POCKETBASE_DEBUG
    """

    def __init__(self,
                 log_dir: Optional[Union[str, Path]] = None,
                 debug_mode: Optional[bool] = None):
        """
        Initialize the logging manager.

        Args:
            log_dir: Directory for log files (default: POCKETBASE_LOG_DIR, unset = no files)
            debug_mode: Force debug mode (default: POCKETBASE_DEBUG)
        """
        if log_dir is None:
            log_dir = os.environ.get('POCKETBASE_LOG_DIR') or None
        if debug_mode is None:
            debug_mode = os.environ.get('POCKETBASE_DEBUG', '').lower() in ('1', 'true', 'yes')

        self.log_dir = Path(log_dir).expanduser() if log_dir else None
        self.debug_mode = debug_mode
        self.loggers: Dict[str, logging.Logger] = {}
        self._error_handler: Optional[logging.Handler] = None

        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        # Library default: stay silent unless the application configures logging
        logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())

    def get_logger(self, name: str, component: Optional[str] = None) -> logging.Logger:
        """
        Get or create a logger for a specific component.

        Args:
            name: Logger name (e.g., 'RealtimeChannel')
            component: Component category ('realtime', 'http', None for main)

        Returns:
            Configured logger instance
        """
        logger_key = f"{component}.{name}" if component else name

        if logger_key in self.loggers:
            return self.loggers[logger_key]

        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{logger_key}")
        logger.setLevel(logging.DEBUG if self.debug_mode else logging.INFO)

        if self.log_dir:
            self._attach_file_handlers(logger, name, component)

        self.loggers[logger_key] = logger
        return logger

    def _attach_file_handlers(self, logger: logging.Logger, name: str,
                              component: Optional[str]):
        """Add rotating file handlers for a logger"""
        if component:
            component_dir = self.log_dir / component
            component_dir.mkdir(parents=True, exist_ok=True)
            log_file = component_dir / f"{name.lower()}.log"
        else:
            log_file = self.log_dir / f"{name.lower()}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )

        if self.debug_mode:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # One error log shared by every component
        if self._error_handler is None:
            self._error_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / 'error.log',
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            self._error_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d]\n%(message)s\n',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self._error_handler.setLevel(logging.ERROR)
        logger.addHandler(self._error_handler)

    def log_with_context(self, logger: logging.Logger, level: int, message: str,
                         context: Optional[Dict[str, Any]] = None):
        """
        Log a message with additional context.

        Args:
            logger: Logger instance
            level: Log level
            message: Log message
            context: Additional context dict
        """
        if context:
            # Format context as JSON for structured logging
            context_str = json.dumps(context, default=str)
            full_message = f"{message} | Context: {context_str}"
        else:
            full_message = message

        logger.log(level, full_message)

    def close(self):
        """Detach and close every file handler this manager created"""
        for logger in self.loggers.values():
            for handler in logger.handlers[:]:
                if isinstance(handler, logging.handlers.RotatingFileHandler):
                    logger.removeHandler(handler)
                    handler.close()
        self.loggers.clear()
        self._error_handler = None


# Singleton instance
_logging_manager = None


def get_logging_manager() -> LoggingManager:
    """Get the singleton LoggingManager instance"""
    global _logging_manager
    if _logging_manager is None:
        _logging_manager = LoggingManager()
    return _logging_manager


def get_logger(name: str, component: Optional[str] = None) -> logging.Logger:
    """
    Convenience function to get a logger.

    Args:
        name: Logger name
        component: Component type ('realtime', 'http', or None)

    Returns:
        Configured logger
    """
    manager = get_logging_manager()
    return manager.get_logger(name, component)


def configure_logging(log_dir: Optional[Union[str, Path]] = None,
                      debug_mode: Optional[bool] = None) -> LoggingManager:
    """
    (Re)initialize the logging system.

    Replaces the singleton so that loggers requested afterwards pick up the
    new settings.
    """
    global _logging_manager
    if _logging_manager is not None:
        _logging_manager.close()
    _logging_manager = LoggingManager(log_dir=log_dir, debug_mode=debug_mode)
    return _logging_manager
