"""
Common response and display helpers for the API layer
"""

import logging
from datetime import date
from typing import Optional

from flask import jsonify

from .azure_oauth import ConfigurationError, NotAuthenticatedError, UpstreamError
from .dataverse_api import DataverseNotFoundError

logger = logging.getLogger(__name__)


class UIHelpers:
    """Common UI helper functions"""

    @staticmethod
    def error_status(error: Exception) -> int:
        """HTTP status for an exception raised below the route handlers"""
        if isinstance(error, NotAuthenticatedError):
            return 401
        if isinstance(error, DataverseNotFoundError):
            return 404
        if isinstance(error, UpstreamError):
            return 502
        return 500

    @staticmethod
    def error_response(error: Exception, **extra):
        """JSON error body plus mapped status code"""
        status = UIHelpers.error_status(error)
        message = str(error) or 'Unbekannter Fehler'
        if status == 500 and not isinstance(error, ConfigurationError):
            # Unexpected errors do not leak internals
            logger.exception(f"Unexpected error: {error}")
            message = 'Interner Serverfehler'
        body = {'success': False, 'error': message}
        body.update(extra)
        return jsonify(body), status

    @staticmethod
    def format_date(value: Optional[date]) -> str:
        """Short Swiss date, e.g. 03.11."""
        if not value:
            return '-'
        return value.strftime('%d.%m.')

    @staticmethod
    def truncate_text(text: str, max_length: int = 50) -> str:
        """Truncate text for display"""
        if len(text) <= max_length:
            return text
        return text[:max_length-3] + "..."
