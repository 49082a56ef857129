"""
Error Handling Module

Provides the exception hierarchy shared by the filters, the clustering
algorithms, option parsing and dataset I/O. Every error carries an error
code and details so it can be logged as a structured event.
"""

import time
from typing import Any, Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class MembershipFilterError(Exception):
    """Base exception for all cluster membership filter errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(MembershipFilterError):
    """Invalid settings or filter/clusterer options."""
    pass


# Filter Protocol Errors
class FilterError(MembershipFilterError):
    """Base class for filter-related errors."""
    pass


class InvalidStateError(FilterError, RuntimeError):
    """Filter used out of order (e.g. input before an input schema is set)."""
    pass


class RangeError(MembershipFilterError, ValueError):
    """Malformed attribute range text."""
    pass


# Clustering Errors
class ClusteringError(MembershipFilterError):
    """Base class for clustering algorithm errors."""
    pass


class InvalidAlgorithmError(ConfigurationError, ClusteringError):
    """Unknown or unsupported clustering algorithm."""
    pass


class ClustererNotFittedError(ClusteringError):
    """Clusterer queried before it was fitted."""
    pass


class InsufficientDataError(ClusteringError):
    """Not enough data points for clustering."""
    pass


# Data Errors
class DataFormatError(MembershipFilterError):
    """Dataset could not be read, written or interpreted."""
    pass


