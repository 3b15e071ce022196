"""
Scorecard Optimizer - Logging Facility

Provides logging with:
- Daily log rotation
- Category-based logging (optimizer, scoring, abtest, database, cli)
- Combined log and errors-only log
- Configurable log levels per category
- Structured log format
"""

import os
import sys
import glob
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from datetime import datetime, timedelta
from typing import Dict, Optional, Union

import yaml


# Log format: [TIMESTAMP] [LEVEL] [THREAD] [MODULE] - MESSAGE
LOG_FORMAT = '[%(asctime)s.%(msecs)03d] [%(levelname)-8s] [%(threadName)-15s] [%(name)-28s] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

DEFAULT_LOG_DIR = os.path.join(
    os.environ.get('SCORECARD_DATA_DIR', '.'),
    'logs'
)

# Log categories and their subdirectories
LOG_CATEGORIES = {
    'optimizer': 'engine',
    'scoring': 'engine',
    'abtest': 'engine',
    'database': 'database',
    'cli': 'cli',
}

DEFAULT_LOG_LEVELS = {
    'optimizer': logging.DEBUG,
    'scoring': logging.INFO,
    'abtest': logging.DEBUG,
    'database': logging.INFO,
    'cli': logging.INFO,
}


def _parse_level(level: Union[int, str]) -> int:
    """Accept logging levels as ints or names ('DEBUG', 'info', ...)."""
    if isinstance(level, int):
        return level
    parsed = logging.getLevelName(str(level).upper())
    return parsed if isinstance(parsed, int) else logging.INFO


class DailyRotatingFileHandler(TimedRotatingFileHandler):
    """
    Handler that creates daily log files with date in filename.
    Format: category_YYYY-MM-DD.log
    """

    def __init__(
        self,
        log_dir: str,
        category: str,
        level: int = logging.DEBUG,
        retention_days: int = 30
    ):
        self.log_dir = Path(log_dir)
        self.category = category
        self.log_dir.mkdir(parents=True, exist_ok=True)

        super().__init__(
            self._get_log_filename(),
            when='midnight',
            interval=1,
            backupCount=retention_days,
            encoding='utf-8'
        )

        self.setLevel(level)
        self.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    def _get_log_filename(self) -> str:
        """Get log filename for today."""
        today = datetime.now().strftime('%Y-%m-%d')
        return str(self.log_dir / f"{self.category}_{today}.log")

    def doRollover(self):
        """Override rollover to use date-based naming."""
        if self.stream:
            self.stream.close()
            self.stream = None

        self.baseFilename = self._get_log_filename()
        self._cleanup_old_logs()

        self.mode = 'a'
        self.stream = self._open()

    def _cleanup_old_logs(self):
        """Remove logs older than retention period."""
        pattern = str(self.log_dir / f"{self.category}_*.log")
        cutoff = datetime.now() - timedelta(days=self.backupCount)

        for log_file in glob.glob(pattern):
            filename = os.path.basename(log_file)
            date_str = filename.replace(f"{self.category}_", "").replace(".log", "")
            try:
                file_date = datetime.strptime(date_str, '%Y-%m-%d')
            except ValueError:
                continue

            if file_date < cutoff:
                try:
                    os.remove(log_file)
                except OSError as e:
                    sys.stderr.write(f"Could not remove old log {log_file}: {e}\n")


class LoggingManager:
    """
    Manages application-wide logging configuration.
    Creates category-specific loggers with daily rotation.
    """

    def __init__(
        self,
        log_dir: str = None,
        config_file: str = None,
        console_level: Union[int, str] = logging.INFO,
        retention_days: int = 30
    ):
        """
        Initialize logging manager.

        Args:
            log_dir: Base directory for log files
            config_file: Path to logging config YAML file (per-category levels)
            console_level: Log level for console output
            retention_days: Number of days to retain logs
        """
        self.log_dir = log_dir or DEFAULT_LOG_DIR
        self.console_level = _parse_level(console_level)
        self.retention_days = retention_days
        self.loggers: Dict[str, logging.Logger] = {}
        self.handlers: Dict[str, logging.Handler] = {}

        self.config = {}
        if config_file and os.path.exists(config_file):
            with open(config_file, 'r') as f:
                self.config = yaml.safe_load(f) or {}

        self._create_directory_structure()
        self._setup_combined_logs()
        self._setup_console_handler()

    def _create_directory_structure(self):
        """Create the log directory structure."""
        subdirs = set(LOG_CATEGORIES.values())
        subdirs.add('combined')

        for subdir in subdirs:
            Path(self.log_dir, subdir).mkdir(parents=True, exist_ok=True)

    def _setup_combined_logs(self):
        """Set up combined log handlers (all logs and errors only)."""
        combined_dir = os.path.join(self.log_dir, 'combined')

        self.handlers['combined_all'] = DailyRotatingFileHandler(
            combined_dir, 'all',
            level=logging.DEBUG,
            retention_days=self.retention_days
        )

        self.handlers['combined_errors'] = DailyRotatingFileHandler(
            combined_dir, 'errors',
            level=logging.ERROR,
            retention_days=self.retention_days
        )

    def _setup_console_handler(self):
        """Set up console output handler."""
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self.console_level)
        console.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        self.handlers['console'] = console

    def get_logger(self, category: str) -> logging.Logger:
        """
        Get a logger for a specific category.

        Component modules log to children of this logger
        (e.g. 'scorecard.optimizer.correlation'), which propagate here.

        Args:
            category: Logger category (optimizer, scoring, abtest, ...)

        Returns:
            Configured Logger instance
        """
        if category in self.loggers:
            return self.loggers[category]

        logger = logging.getLogger(f'scorecard.{category}')
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        level = _parse_level(self.config.get('levels', {}).get(
            category,
            DEFAULT_LOG_LEVELS.get(category, logging.DEBUG)
        ))

        subdir = LOG_CATEGORIES.get(category, category)
        log_dir = os.path.join(self.log_dir, subdir)

        handler = DailyRotatingFileHandler(
            log_dir, category,
            level=level,
            retention_days=self.retention_days
        )
        logger.addHandler(handler)
        logger.addHandler(self.handlers['combined_all'])
        logger.addHandler(self.handlers['combined_errors'])
        logger.addHandler(self.handlers['console'])

        self.loggers[category] = logger
        return logger

    def setup_all(self):
        """Create every known category logger up front."""
        for category in LOG_CATEGORIES:
            self.get_logger(category)

    def set_level(self, category: str, level: Union[int, str]):
        """Set file log level for a category."""
        if category in self.loggers:
            for handler in self.loggers[category].handlers:
                if isinstance(handler, DailyRotatingFileHandler) and handler.category == category:
                    handler.setLevel(_parse_level(level))

    def set_console_level(self, level: Union[int, str]):
        """Set console output log level."""
        if 'console' in self.handlers:
            self.handlers['console'].setLevel(_parse_level(level))

    def shutdown(self):
        """Shutdown all loggers and handlers."""
        for logger in self.loggers.values():
            for handler in logger.handlers[:]:
                handler.close()
                logger.removeHandler(handler)
            logger.propagate = True

        for handler in self.handlers.values():
            handler.close()

        self.loggers.clear()
        self.handlers.clear()


# Global logging manager instance
_logging_manager: Optional[LoggingManager] = None


def setup_logging(
    log_dir: str = None,
    config_file: str = None,
    console_level: Union[int, str] = logging.INFO,
    retention_days: int = 30
) -> LoggingManager:
    """
    Initialize the global logging manager and all category loggers.

    Args:
        log_dir: Base directory for log files
        config_file: Path to logging config YAML file
        console_level: Log level for console output
        retention_days: Number of days to retain logs

    Returns:
        LoggingManager instance
    """
    global _logging_manager

    if _logging_manager is not None:
        _logging_manager.shutdown()

    _logging_manager = LoggingManager(
        log_dir=log_dir,
        config_file=config_file,
        console_level=console_level,
        retention_days=retention_days
    )
    _logging_manager.setup_all()

    return _logging_manager


def get_logger(category: str) -> logging.Logger:
    """
    Get a logger for a specific category.

    Falls back to an unconfigured 'scorecard.<category>' logger when
    setup_logging() has not been called, so library use never writes files.
    """
    if _logging_manager is None:
        return logging.getLogger(f'scorecard.{category}')

    return _logging_manager.get_logger(category)


def shutdown_logging():
    """Shutdown the logging system."""
    global _logging_manager

    if _logging_manager:
        _logging_manager.shutdown()
        _logging_manager = None


def get_optimizer_logger() -> logging.Logger:
    """Get the weight optimizer logger."""
    return get_logger('optimizer')


def get_scoring_logger() -> logging.Logger:
    """Get the scoring logger."""
    return get_logger('scoring')


def get_abtest_logger() -> logging.Logger:
    """Get the A/B test logger."""
    return get_logger('abtest')


def get_database_logger() -> logging.Logger:
    """Get the database logger."""
    return get_logger('database')


def get_cli_logger() -> logging.Logger:
    """Get the command-line logger."""
    return get_logger('cli')
