"""
Error taxonomy for the explorer API
Every error maps to one HTTP status and a JSON {"error": message} body
"""

from typing import Any, Dict, Optional


class ExplorerError(Exception):
    """Base class for errors that are rendered as JSON responses"""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class InvalidInput(ExplorerError):
    status_code = 400
    default_message = "Invalid input"


class NotFound(ExplorerError):
    status_code = 404
    default_message = "Not found"


class GatewayUnconfigured(ExplorerError):
    """Upstream endpoint missing from configuration (503, or 500 for indexer-only routes)"""

    status_code = 503
    default_message = "Upstream gateway not configured"


class UpstreamFailure(ExplorerError):
    """Network error, timeout, bad status or error payload from an upstream"""

    status_code = 502
    default_message = "Upstream request failed"
