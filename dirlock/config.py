"""Configuration handler for dirlock"""

import os
import logging
from dataclasses import dataclass, fields
from typing import Dict, Optional

import yaml

from .errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_NAME = 'default_lock'
DEFAULT_POLL_INTERVAL = 30
DEFAULT_MAX_WAIT = 3600


def default_directory() -> str:
    return os.path.expanduser('~')


@dataclass
class LockConfig:
    """Settings of one acquire call"""
    directory: str = None
    name: str = DEFAULT_NAME
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_wait: float = DEFAULT_MAX_WAIT
    node: Optional[str] = None

    def __post_init__(self):
        if self.directory is None:
            self.directory = default_directory()

    def validate(self) -> 'LockConfig':
        if not self.directory:
            raise ValidationError("Lock directory must not be empty")
        if not self.name or not self.name.strip():
            raise ValidationError("Lock name must not be empty")
        for label in ('poll_interval', 'max_wait'):
            value = getattr(self, label)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{label} must be a number of seconds, got {value!r}")
            if value < 0:
                raise ValidationError(f"{label} must not be negative, got {value}")
        return self

    @classmethod
    def from_dict(cls, values: Dict) -> 'LockConfig':
        """Build a config from merged settings, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known}).validate()


class Config:
    """Configuration file handler"""

    DEFAULT_CONFIG_FILE = '~/.dirlock.yml'

    @staticmethod
    def load_config(config_path: Optional[str] = None) -> Dict:
        """Load configuration from YAML file"""
        config_path = os.path.expanduser(config_path or Config.DEFAULT_CONFIG_FILE)
        if not os.path.exists(config_path):
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config file {config_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {config_path}: expected a mapping")
            return {}
        return data

    @staticmethod
    def merge_config(file_config: Dict, cli_args: Dict, environ: Optional[Dict] = None) -> Dict:
        """Merge file config with CLI arguments, CLI args take precedence"""
        if environ is None:
            environ = os.environ
        config = {
            'directory': cli_args.get('directory') or file_config.get('directory') or environ.get('DIRLOCK_DIR'),
            'name': cli_args.get('name') or file_config.get('name') or environ.get('DIRLOCK_NAME'),
            'poll_interval': _first(cli_args.get('poll_interval'), file_config.get('poll-interval')),
            'max_wait': _first(cli_args.get('max_wait'), file_config.get('max-wait')),
            'node': cli_args.get('node') or file_config.get('node'),
        }

        # Remove None values
        return {k: v for k, v in config.items() if v is not None}


def _first(*values):
    # 0 is a valid interval, so `or` chaining does not apply here
    for value in values:
        if value is not None:
            return value
    return None
