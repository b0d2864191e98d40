"""
Root of the storefront exception hierarchy.
"""


class StorefrontException(Exception):
    """
    Domain error raised by services and repositories.

    The web layer turns every subclass into a structured JSON error via
    utils/error_handler.py; `details` ends up verbatim in the response body,
    so it must only carry identifiers and states, never secrets or PII.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        context = ''.join(f", {key}={value!r}" for key, value in self.details.items())
        return f"{type(self).__name__}({self.message!r}{context})"
