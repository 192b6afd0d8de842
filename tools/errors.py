# where: wordpress/tools/errors.py
# what: Exception hierarchy shared by the WordPress request builder and dispatcher.
# why: Callers need to tell configuration, input, and remote failures apart.

from __future__ import annotations

import requests

# ネットワークレベルの失敗はrequestsの例外をそのまま伝播させる
TransportError = requests.RequestException


class WordPressError(RuntimeError):
    """Base class for every error raised by the WordPress plugin core."""

    def __init__(self, message: str, item_index: int | None = None) -> None:
        self.item_index = item_index
        super().__init__(message)


class ConfigurationError(WordPressError):
    """Raised when the site credentials cannot be used (e.g. empty site URL)."""


class ValidationError(WordPressError):
    """Raised before any network call when a required input is missing."""

    def __init__(self, field: str, message: str, item_index: int | None = None) -> None:
        self.field = field
        super().__init__(message, item_index=item_index)


class RemoteError(WordPressError):
    """Raised when the WordPress REST API returns an error response."""

    def __init__(
        self,
        status_code: int | None,
        message: str,
        body: str | None = None,
        item_index: int | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message, item_index=item_index)


class UnsupportedOperationError(WordPressError):
    """Raised for resource/operation pairs that have no handler."""
