"""
Response envelopes for success and failure.

Every response carries a ``success`` boolean; failures always carry a
human-readable ``error`` and, where applicable, ``details`` or ``field``.
"""

import logging
from typing import Dict, List, Optional, Any

logger = logging.getLogger(__name__)


class HTTP:
    """HTTP status codes for errors"""
    # 2xx
    OK = 200
    CREATED = 201

    # 4xx Client Errors
    BAD_REQUEST = 400
    NOT_FOUND = 404
    CONFLICT = 409

    # 5xx Server Errors
    INTERNAL_ERROR = 500


def get_error_category(status_code: int) -> str:
    """Get human-readable category name for logging from HTTP status code"""
    return {
        400: 'bad_request',
        404: 'not_found',
        409: 'conflict',
        422: 'validation_failed',
        500: 'internal_error',
    }.get(status_code, f'http_{status_code}')


class Notification:
    """Static builders for the response envelope"""

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None,
                pagination: Optional[Dict[str, Any]] = None, **extra: Any) -> Dict[str, Any]:
        response: Dict[str, Any] = {"success": True}
        if data is not None:
            response["data"] = data
        if pagination is not None:
            response["pagination"] = pagination
        if message:
            response["message"] = message
        response.update(extra)
        return response

    @classmethod
    def error(cls, status_code: int, message: str, details: Optional[List[str]] = None,
              field: Optional[str] = None, entity: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
        """Build a failure envelope and log it under its error category"""
        category = get_error_category(status_code)
        if status_code >= HTTP.INTERNAL_ERROR:
            logger.error(f"[{category}] {message}")
        else:
            logger.info(f"[{category}] {message}")

        response: Dict[str, Any] = {"success": False, "error": message}
        if details:
            response["details"] = details
        if field:
            response["field"] = field
        if entity:
            response["entity"] = entity
        response.update(extra)
        return response


def pagination_envelope(total: int, page: int, limit: int) -> Dict[str, int]:
    """Pagination block for list responses; totalPages is ceil(total / limit)."""
    total_pages = (total + limit - 1) // limit if total > 0 else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
    }
