"""
Logging utilities for Tower Farmer
Provides structured logging with file rotation and different log levels
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

LOGS_DIR = Path(__file__).parent.parent.parent / "logs"

# Default log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

DEFAULT_LOG_FILE = "tower_farmer.log"

# Logger registry to avoid duplicate handlers
_loggers = {}


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that safely handles Unicode encoding errors"""

    def emit(self, record):
        try:
            msg = self.format(record)
            self.stream.write(msg + self.terminator)
            self.flush()
        except UnicodeEncodeError:
            try:
                msg = self.format(record)
                safe_msg = msg.encode('ascii', errors='replace').decode('ascii')
                self.stream.write(safe_msg + self.terminator)
                self.flush()
            except Exception:
                self.handleError(record)
        except Exception:
            self.handleError(record)


def _console_handler() -> logging.Handler:
    return SafeStreamHandler(sys.stdout)


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        LOGS_DIR / log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )


def _install_handlers(logger: logging.Logger,
                      log_file: Optional[str],
                      console_output: bool,
                      detailed: bool,
                      max_bytes: int = 10 * 1024 * 1024,
                      backup_count: int = 5) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(DETAILED_FORMAT if detailed else DEFAULT_FORMAT)

    if log_file:
        file_handler = _file_handler(log_file, max_bytes, backup_count)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = _console_handler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)


def get_logger(name: str, level: str = "INFO",
               log_file: Optional[str] = DEFAULT_LOG_FILE,
               console_output: bool = True,
               detailed: bool = False) -> logging.Logger:
    """
    Get a configured logger instance

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file name in logs/ directory, None to disable file output
        console_output: Whether to output to console
        detailed: Whether to use detailed format

    Returns:
        Configured logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    _install_handlers(logger, log_file, console_output, detailed)

    # Prevent propagation to root logger
    logger.propagate = False

    _loggers[name] = logger
    return logger


def configure_logging(logging_config) -> None:
    """
    Re-apply logging settings from configuration to every registered logger

    Args:
        logging_config: LoggingConfig section of the bot configuration
    """
    level = getattr(logging, str(logging_config.level).upper(), logging.INFO)
    log_file = logging_config.log_file if logging_config.file_enabled else None

    for logger in _loggers.values():
        logger.setLevel(level)
        _install_handlers(
            logger,
            log_file,
            logging_config.console_enabled,
            logging_config.detailed_format,
            max_bytes=logging_config.max_file_size,
            backup_count=logging_config.backup_count,
        )


class DeviceLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the serial of the device it concerns"""

    def process(self, msg, kwargs):
        return f"[{self.extra['device_serial']}] {msg}", kwargs


def get_device_logger(name: str, device_serial: str) -> DeviceLoggerAdapter:
    """Get a logger that tags its output with a device serial"""
    return DeviceLoggerAdapter(get_logger(name), {'device_serial': device_serial})
