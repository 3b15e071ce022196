"""
Scorecard Optimizer - Utilities

Provides logging and configuration helpers.
"""

from scorecard_optimizer.utils.logging import (
    setup_logging,
    get_logger,
    shutdown_logging,
    get_optimizer_logger,
    get_scoring_logger,
    get_abtest_logger,
    get_database_logger,
    get_cli_logger,
    LoggingManager
)
from scorecard_optimizer.utils.config import (
    DEFAULT_CONFIG,
    deep_merge,
    load_config,
    get_scoring_config,
    get_optimizer_config,
    get_ab_testing_config,
    get_database_config,
    get_logging_config
)

__all__ = [
    # Logging
    'setup_logging',
    'get_logger',
    'shutdown_logging',
    'get_optimizer_logger',
    'get_scoring_logger',
    'get_abtest_logger',
    'get_database_logger',
    'get_cli_logger',
    'LoggingManager',
    # Config
    'DEFAULT_CONFIG',
    'deep_merge',
    'load_config',
    'get_scoring_config',
    'get_optimizer_config',
    'get_ab_testing_config',
    'get_database_config',
    'get_logging_config',
]
