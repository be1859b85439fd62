"""Error taxonomy shared by services and handlers.

Every error carries the HTTP status the handlers answer with; ``main.py``
turns them into the uniform ``{"success": false, "error": ...}`` body.
"""
from __future__ import annotations

from typing import Optional


class PrepPanelError(Exception):
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(PrepPanelError):
    """A required credential or URL is missing."""
    status_code = 500


class AuthenticationError(PrepPanelError):
    status_code = 401


class UpstreamError(PrepPanelError):
    """The model endpoint answered with a non-2xx status (or never answered)."""
    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class ParseError(PrepPanelError):
    """Model output was neither JSON nor JSON inside a code fence."""
    status_code = 502

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class PersistenceError(PrepPanelError):
    status_code = 500


class InvalidRequestError(PrepPanelError):
    status_code = 400


class NotFoundError(PrepPanelError):
    status_code = 404


class TopicExistsError(PrepPanelError):
    status_code = 409
