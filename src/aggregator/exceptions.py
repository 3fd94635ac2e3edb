#!/usr/bin/env python3
"""
Standardized exception hierarchy for the article aggregator.

Every error raised by a source carries an ErrorKind so the driver can turn it
into a failure record without inspecting exception classes.
"""

import asyncio
from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Machine-readable classification of a failure."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    PARSE = "parse"
    AUTH = "auth"
    CONTRACT = "contract"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class AggregatorError(Exception):
    """Base exception for all aggregator errors."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_kind': self.kind.value,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Source-related exceptions
class SourceError(AggregatorError):
    """Base exception for news source errors."""
    pass


class NetworkError(SourceError):
    """Transport-level failure: connection refused, DNS, bad HTTP status."""

    kind = ErrorKind.NETWORK

    def __init__(self, source_name: str, url: str, reason: str, status: Optional[int] = None):
        message = f"Failed to fetch {url} for {source_name}: {reason}"
        context = {
            'source_name': source_name,
            'url': url,
            'reason': reason,
            'status': status
        }
        super().__init__(message, context=context)
        self.status = status


class SourceTimeoutError(NetworkError):
    """Source request or whole source call timed out."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, source_name: str, timeout_seconds: float, url: str = ""):
        super().__init__(source_name, url, f"timed out after {timeout_seconds}s")
        self.message = f"Timeout fetching {source_name} after {timeout_seconds}s"
        self.args = (self.message,)
        self.context['timeout_seconds'] = timeout_seconds


class ParseError(SourceError):
    """Malformed feed or HTML structure, or fields of the wrong type."""

    kind = ErrorKind.PARSE

    def __init__(self, source_name: str, parse_stage: str, detail: str):
        message = f"Failed to parse {parse_stage} from {source_name}: {detail}"
        context = {
            'source_name': source_name,
            'parse_stage': parse_stage,
            'detail': detail
        }
        super().__init__(message, context=context)


class AuthError(SourceError):
    """Login failed, or a session was rejected by the site."""

    kind = ErrorKind.AUTH

    def __init__(self, source_name: str, domain: str, detail: str, expired: bool = False):
        message = f"Authentication failed for {source_name} ({domain}): {detail}"
        context = {
            'source_name': source_name,
            'domain': domain,
            'detail': detail,
            'expired': expired
        }
        super().__init__(message, context=context)
        self.domain = domain
        self.expired = expired


class ContractViolation(SourceError):
    """An adapter produced an article that breaks the article invariants."""

    kind = ErrorKind.CONTRACT

    def __init__(self, field: str, value: Any, expected: str):
        message = f"Article invariant violated for {field}: expected {expected}, got {value!r}"
        context = {
            'field': field,
            'value': str(value),
            'expected': expected
        }
        super().__init__(message, context=context)
        self.field = field


# Configuration-related exceptions
class ConfigurationError(AggregatorError):
    """Configuration is invalid or missing."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


def error_kind_of(error: BaseException) -> ErrorKind:
    """Classify any exception, including ones raised outside the taxonomy."""
    if isinstance(error, AggregatorError):
        return error.kind
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNEXPECTED
