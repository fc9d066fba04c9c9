from __future__ import annotations
from dataclasses import dataclass


class ProviderError(Exception):
    """Base class for provider-level failures. Carries the original diagnostic text."""


class AuthenticationError(ProviderError):
    """
    Required credential is missing. Raised before any network call is attempted.
    """


class PayloadTooLargeError(ProviderError):
    """
    Transport signalled entity-too-large (HTTP 413). The message is user guidance,
    the raw provider error is chained as __cause__.
    """


class ProviderHTTPError(ProviderError):
    """Non-2xx response from an HTTP provider; keeps status and body for classification."""

    def __init__(self, status_code: int, body: str):
        self.status_code = int(status_code)
        self.body = body
        super().__init__(f"Provider Error ({self.status_code}): {body}")


@dataclass(frozen=True)
class DecodeWarning:
    """
    Non-fatal: a single stream line could not be decoded. Logged and collected,
    never raised.
    """
    line: str
    reason: str

    def __str__(self) -> str:
        return f"{self.reason}: {self.line[:200]!r}"
