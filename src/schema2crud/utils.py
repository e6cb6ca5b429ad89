import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any

import yaml

logger = logging.getLogger(__name__)


def load_settings(config_file: Path | None, required: bool = True) -> Dict[str, Any]:
    """Read a JSON or YAML document from disk; an unreadable file yields an empty dict."""
    try:
        if config_file:
            with open(config_file, 'r', encoding='utf-8') as config_handle:
                if config_file.suffix.lower() in ('.yaml', '.yml'):
                    return yaml.safe_load(config_handle) or {}
                return json.load(config_handle)
    except Exception as e:
        if required:
            logger.error(f"Error loading config file {config_file}: {e}")
        return {}

    return {}


def save_settings(config_file: Path, data: Dict[str, Any]) -> None:
    """Overwrite a settings file with the given document."""
    config_file.parent.mkdir(parents=True, exist_ok=True)
    tmp_file = config_file.with_name(config_file.name + '.tmp')
    with open(tmp_file, 'w', encoding='utf-8') as config_handle:
        if config_file.suffix.lower() in ('.yaml', '.yml'):
            yaml.safe_dump(data, config_handle, sort_keys=False)
        else:
            json.dump(data, config_handle, indent=2, default=str)
    tmp_file.replace(config_file)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def parse_datetime(dt_str: str) -> datetime:
    """Parse an ISO format datetime string, accepting a trailing 'Z'"""
    date_str = dt_str.strip()
    if date_str.endswith('Z'):
        date_str = date_str[:-1] + '+00:00'
    return datetime.fromisoformat(date_str)


def coerce_numeric(token: str) -> Any:
    """Return the token as an int or finite float when it parses as one, otherwise unchanged"""
    text = token.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return token
    return value if math.isfinite(value) else token
