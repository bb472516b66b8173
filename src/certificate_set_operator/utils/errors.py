"""Operator exceptions and error sanitization utilities."""

import re


class OperatorError(Exception):
    """Base class for errors raised by the operator."""


class ConfigurationError(OperatorError):
    """Raised when the operator configuration is invalid."""


class ResourceNotFoundError(OperatorError):
    """Raised by the resource store when an object does not exist."""

    def __init__(self, kind: str, namespace: str | None, name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {location} not found")


class ResourceAlreadyExistsError(OperatorError):
    """Raised by the resource store when a create hits an existing object."""

    def __init__(self, kind: str, namespace: str | None, name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {location} already exists")


class TemplateRenderError(OperatorError):
    """Raised when a secret payload template cannot be rendered."""


class PhaseError(OperatorError):
    """A reconciliation phase failed.

    Carries the condition reason the failure is reported under.
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]*?-----END [A-Z ]*PRIVATE KEY-----",
    r"(client-key-data:\s*)\S+",
    r"(\"keyData\":\s*\")[^\"]+",
]


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove key material.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        if "(" in pattern:
            sanitized = re.sub(pattern, r"\1[REDACTED]", sanitized)
        else:
            sanitized = re.sub(pattern, "[REDACTED]", sanitized)

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))
