"""
errors.py

Responsibility: Exception hierarchy for the Stereotype client.

Local validation problems are raised before any request is sent. Anything that
goes wrong on the wire (non-2xx status, timeout, connection failure) surfaces
as `StereotypeHTTPError`.
"""

from __future__ import annotations


class StereotypeError(RuntimeError):
    pass


class ConfigError(StereotypeError, ValueError):
    pass


class StereotypeValidationError(StereotypeError, ValueError):
    pass


class UnsupportedContentTypeError(StereotypeValidationError):
    def __init__(self, content_type: str | None) -> None:
        super().__init__(f"Invalid content type: {content_type}")
        self.content_type = content_type


class InvalidTemplateUrlError(StereotypeValidationError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid template URL: {url}")
        self.url = url


class TemplateNotFoundError(StereotypeValidationError):
    """Raised locally for an empty template id, shaped like a 404 response."""

    status = 404

    def __init__(self, template_id: str | None) -> None:
        super().__init__(f"Template not found: {template_id!r}")
        self.template_id = template_id


class StereotypeHTTPError(StereotypeError):
    """
    A failed round trip.

    `status` is None when no response arrived at all (timeout, refused connection).
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        method: str = "",
        url: str = "",
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status = status
        self.method = method
        self.url = url
        self.body = body


class InvalidIdentifierError(StereotypeValidationError):
    """An id that would not stay a single path segment once put in a URL."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Invalid identifier: {identifier!r}")
        self.identifier = identifier
