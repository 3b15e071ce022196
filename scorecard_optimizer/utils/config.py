"""
Scorecard Optimizer - Configuration Loader
Handles loading and merging configuration from YAML files.
"""

import copy
from pathlib import Path
from typing import Dict, Any, Optional, List
import logging

import yaml

logger = logging.getLogger('scorecard.config')


# Default configuration (used if no config file found)
DEFAULT_CONFIG = {
    'scoring': {
        'threshold': 0.5,
        'fallback_score': 50.0,
        # Lower is better for these features (substring match, case-insensitive)
        'inverted_features': [
            'churnProbability',
            'daysSinceLastLogin',
            'supportTickets',
        ],
        'model_name': 'weighted',
    },
    'optimizer': {
        'default_weights': {
            'productUsageFrequency': 0.25,
            'supportTicketVolume': 0.15,
            'featureAdoptionRate': 0.2,
            'npsScore': 0.1,
            'contractValue': 0.1,
            'timeSinceLastLogin': 0.2,
        },
        'iterations': 100,
        'population_size': 20,
        'mutation_rate': 0.3,
        'mutation_strength': 0.2,
        'seed': None,
    },
    'ab_testing': {
        'significance_level': 0.05,
        'z_score': 1.96,
    },
    'database': {
        'path': None,  # None = in-memory
    },
    'logging': {
        'dir': None,
        'console_level': 'INFO',
        'retention_days': 30,
    },
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _get_search_paths() -> List[Path]:
    """
    Build the list of paths to search for config files.

    Priority order:
    1. Command line argument (handled in load_config)
    2. scorecard_optimizer/user_config.yaml (user overrides)
    3. scorecard_optimizer/config/config.yaml (default)
    """
    pkg_dir = Path(__file__).parent.parent  # scorecard_optimizer/

    return [
        pkg_dir / 'user_config.yaml',
        pkg_dir / 'config' / 'config.yaml',
    ]


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Priority order:
    1. config_path argument (from command line -c)
    2. scorecard_optimizer/user_config.yaml
    3. scorecard_optimizer/config/config.yaml

    Every call returns a fresh dictionary; callers own their copy.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    search_paths = []

    if config_path:
        explicit = Path(config_path)
        if explicit.is_absolute():
            search_paths.append(explicit)
        else:
            # Try relative to cwd first, then as-is
            search_paths.append(Path.cwd() / config_path)
            search_paths.append(explicit)

    search_paths.extend(_get_search_paths())

    config_file = None
    for path in search_paths:
        if path.exists():
            config_file = path
            break

    if config_file:
        try:
            with open(config_file, 'r') as f:
                file_config = yaml.safe_load(f)
                if file_config:
                    config = deep_merge(config, file_config)
            logger.info(f"Loaded config from: {config_file}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {config_file}: {e}")
    else:
        logger.warning("No config file found, using defaults")
        logger.info("Searched: " + ", ".join(str(p) for p in search_paths))

    return config


def get_scoring_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get scoring-specific configuration."""
    return config.get('scoring', DEFAULT_CONFIG['scoring'])


def get_optimizer_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get optimizer-specific configuration."""
    return config.get('optimizer', DEFAULT_CONFIG['optimizer'])


def get_ab_testing_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get A/B testing configuration."""
    return config.get('ab_testing', DEFAULT_CONFIG['ab_testing'])


def get_database_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get database configuration."""
    return config.get('database', DEFAULT_CONFIG['database'])


def get_logging_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get logging configuration."""
    return config.get('logging', DEFAULT_CONFIG['logging'])
