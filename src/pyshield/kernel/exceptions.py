"""Unified exception hierarchy for pyshield.

All toolkit exceptions inherit from PyShieldException so callers can catch
a single base class, or a specific subclass for targeted handling.

Categories:
- ConfigurationException: invalid middleware configuration, raised at construction
- SecurityException: request-level authentication and authorization failures
- InfrastructureException: platform failures such as an unreadable random source
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class PyShieldException(Exception):
    """Base exception for all pyshield errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CSRF_CONFIG").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(PyShieldException):
    """Middleware configuration is invalid; the application must not start serving."""


class CsrfConfigurationException(ConfigurationException):
    """CSRF configuration is missing a required value or violates cookie-prefix rules."""


# =============================================================================
# Security Exceptions
# =============================================================================


class SecurityException(PyShieldException):
    """Authentication and authorization errors."""


class ForbiddenException(SecurityException):
    """The request is not allowed to proceed."""


class CsrfVerificationException(ForbiddenException):
    """CSRF token or origin verification failed for a request."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(PyShieldException):
    """Platform failures outside the request's control."""


class RandomnessException(InfrastructureException):
    """The cryptographic random source could not be read."""
