"""
Logging Configuration

Configurable logging levels and optional rotating log file output for the
batch renderer. Library modules only create module-level loggers; sinks are
decided here, by the CLI.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional


class LoggingConfig:
    """
    Centralized logging configuration.

    Provides configurable logging levels and optional file output.
    """

    def __init__(self):
        self._configured = False
        self._log_file_handler: Optional[logging.Handler] = None
        self._console_handler: Optional[logging.Handler] = None

    def configure_logging(
        self,
        level: str = "info",
        log_file: Optional[str] = None,
        include_timestamps: bool = True,
        max_log_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        force: bool = False,
    ) -> None:
        """
        Configure logging for the application.

        Args:
            level: Logging level (debug, info, warning, error)
            log_file: Optional log file path
            include_timestamps: Whether to include timestamps in console output
            max_log_file_size: Maximum log file size before rotation
            backup_count: Number of backup log files to keep
            force: Reconfigure even if already configured
        """
        if self._configured and not force:
            return

        log_level = self._get_log_level(level)
        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        for handler in (self._console_handler, self._log_file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        self._log_file_handler = None

        self._console_handler = logging.StreamHandler(sys.stderr)
        self._console_handler.setLevel(log_level)
        self._console_handler.setFormatter(
            self._create_console_formatter(include_timestamps, level.lower() == "debug")
        )
        root_logger.addHandler(self._console_handler)

        if log_file:
            self._configure_file_logging(log_file, log_level, max_log_file_size, backup_count)

        self._configured = True

        logger = logging.getLogger(__name__)
        logger.debug(f"Logging configured: level={level}, file={log_file}")

    def _get_log_level(self, level_str: str) -> int:
        """Convert string log level to logging constant."""
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        return level_map.get(level_str.lower(), logging.INFO)

    def _create_console_formatter(self, include_timestamps: bool, debug_mode: bool) -> logging.Formatter:
        parts = []
        if include_timestamps:
            parts.append("%(asctime)s")
        if debug_mode:
            parts.append("%(threadName)s")
            parts.append("%(name)s")
        parts.extend(["%(levelname)s", "%(message)s"])

        return logging.Formatter(
            " - ".join(parts),
            datefmt="%H:%M:%S" if not debug_mode else "%Y-%m-%d %H:%M:%S",
        )

    def _configure_file_logging(
        self,
        log_file: str,
        log_level: int,
        max_size: int,
        backup_count: int,
    ) -> None:
        """Configure file logging with rotation."""
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            self._log_file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            self._log_file_handler.setLevel(log_level)
            self._log_file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            logging.getLogger().addHandler(self._log_file_handler)

        except OSError as e:
            # Log file setup failed, continue with console only
            logger = logging.getLogger(__name__)
            logger.warning(f"Failed to setup log file {log_file}: {e}")

    def log_configuration_details(self, config: Dict[str, Any]) -> None:
        """Log configuration details at debug level."""
        logger = logging.getLogger(__name__)

        if not logger.isEnabledFor(logging.DEBUG):
            return

        logger.debug("=== Configuration Details ===")
        for key, value in config.items():
            logger.debug(f"  {key}: {value}")
        logger.debug("=== End Configuration ===")


# Global logging configuration instance
logging_config = LoggingConfig()


def configure_logging(level: str = "info", log_file: Optional[str] = None, force: bool = False) -> None:
    """
    Convenience function to configure logging.

    Args:
        level: Logging level (debug, info, warning, error)
        log_file: Optional log file path
        force: Reconfigure even if already configured
    """
    logging_config.configure_logging(level=level, log_file=log_file, force=force)
