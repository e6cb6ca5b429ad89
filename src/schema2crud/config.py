import logging
import os
from pathlib import Path
from typing import Dict, Any, Tuple

from schema2crud.utils import load_settings

logger = logging.getLogger(__name__)

# Environment variables that take precedence over config.json values
ENV_OVERRIDES = {
    'MONGODB_URI': 'mongo_uri',
    'DB_NAME': 'db_name',
    'SCHEMA_FILE': 'schema_file',
    'LOG_LEVEL': 'log_level',
    'ENVIRONMENT': 'environment',
}

DEFAULTS: Dict[str, Any] = {
    'mongo_uri': '',
    'db_name': 'schema2crud',
    'db_timeout_ms': 5000,
    'schema_file': 'schemaConfig.json',
    'server_host': '0.0.0.0',
    'server_port': 5000,
    'environment': 'production',
    'log_level': 'info',
    'cors_origins': ['*'],
    'default_page_size': 100,
    'max_page_size': 1000,
}


class Config:
    """Static configuration class - no instances, only class methods"""
    _config: Dict[str, Any] = dict(DEFAULTS)

    @classmethod
    def initialize(cls, config_file: str = '', overrides: Dict[str, Any] | None = None) -> Dict[str, Any]:
        """Initialize the config with values from config file, environment and explicit overrides"""
        config = dict(DEFAULTS)
        config.update(cls._load_system_config(config_file))
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                config[key] = value
        if overrides:
            config.update({k: v for k, v in overrides.items() if v is not None})
        cls._config = config
        return cls._config

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Get a configuration value by key"""
        return cls._config.get(key, default)

    @classmethod
    def get_db_params(cls) -> Tuple[str, str, int]:
        """Get database parameters from config data"""
        return (
            cls._config.get('mongo_uri', ''),
            cls._config.get('db_name', ''),
            int(cls._config.get('db_timeout_ms', 5000))
        )

    @classmethod
    def schema_path(cls) -> Path:
        """Location of the persisted schema document"""
        return Path(cls._config.get('schema_file') or DEFAULTS['schema_file'])

    @classmethod
    def is_development(cls) -> bool:
        return str(cls._config.get('environment', '')).lower() == 'development'

    @classmethod
    def page_limits(cls) -> Tuple[int, int]:
        """(default page size, maximum page size) for list endpoints"""
        return (
            int(cls._config.get('default_page_size', 100)),
            int(cls._config.get('max_page_size', 1000))
        )

    @classmethod
    def _load_system_config(cls, config_file: str) -> Dict[str, Any]:
        """
        Load and return the configuration from config.json.
        If the file is not found, return an empty dict so defaults apply.
        """
        if len(config_file) > 0:
            config_path = Path(config_file)
            if config_path.exists():
                return load_settings(config_path)
            logger.warning(f'Configuration file "{config_file}" not found. Using defaults.')
        return {}
