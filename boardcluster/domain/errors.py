"""Exception hierarchy for the clustering engine."""

from __future__ import annotations


class BoardClusterError(Exception):
    """Base class for all errors raised by boardcluster."""


class ConfigurationError(BoardClusterError):
    """Invalid configuration values or unreadable configuration files."""


class UnsupportedAlgorithmError(BoardClusterError):
    """A declared clustering variant has no implementation."""

    def __init__(self, algorithm: str):
        super().__init__(f"Clustering algorithm '{algorithm}' is not implemented")
        self.algorithm = algorithm


class InputError(BoardClusterError):
    """Board input that cannot be interpreted (e.g. a malformed export file)."""
