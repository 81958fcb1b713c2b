"""
Logging Package for the PocketBase SDK

Loggers propagate to the host application's logging setup by default.
Set POCKETBASE_LOG_DIR to additionally write rotating log files.
"""

from .manager import LoggingManager, get_logger, configure_logging, get_logging_manager

__all__ = ['LoggingManager', 'get_logger', 'configure_logging', 'get_logging_manager']
