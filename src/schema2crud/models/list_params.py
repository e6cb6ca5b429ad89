"""
List parameters for pagination and search.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000


@dataclass
class ListParams:
    """Parameters for paginated, searchable entity lists."""

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: Optional[str] = None

    @property
    def skip(self) -> int:
        """Calculate the number of records to skip for pagination."""
        return (self.page - 1) * self.limit

    @classmethod
    def from_query_params(cls, query_params: Mapping[str, str],
                          default_limit: int = DEFAULT_PAGE_SIZE,
                          max_limit: int = MAX_PAGE_SIZE) -> 'ListParams':
        """Create ListParams from URL query parameters; bad values fall back to defaults."""
        params = cls(limit=default_limit)

        for key, value in query_params.items():
            try:
                if key == 'page':
                    page_val = int(value)
                    if page_val < 1:
                        logger.debug(f"Page number must be >= 1, got: {value}")
                    else:
                        params.page = page_val
                elif key == 'limit':
                    size_val = int(value)
                    if size_val < 1:
                        logger.debug(f"Limit must be >= 1, got: {value}")
                    elif size_val > max_limit:
                        logger.debug(f"Limit cannot exceed {max_limit}, got: {value}")
                        params.limit = max_limit
                    else:
                        params.limit = size_val
                elif key == 'search':
                    params.search = value.strip() or None
            except ValueError:
                logger.debug(f"Invalid parameter '{key}={value}' ignored")
                continue

        return params
