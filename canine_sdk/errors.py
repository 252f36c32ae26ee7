"""
Custom exceptions for the Canine SDK.
"""

from typing import Dict, Optional


class CanineError(Exception):
    """Base exception for all Canine-specific errors."""

    pass


class CanineProviderError(CanineError):
    """Base exception for storage provider errors."""

    pass


class CanineChainError(CanineError):
    """Base exception for chain-related errors."""

    pass


class CanineDecodeError(CanineError):
    """Raised when a tree record cannot be decrypted, decompressed or parsed.

    A caller without an entry in the access map ends up here too, the two
    cases are not told apart.
    """

    pass


# Provider errors
class CanineProviderUnavailableError(CanineProviderError):
    """Raised when a single provider fails a request (network, timeout, bad status)."""

    pass


class CanineProvidersExhaustedError(CanineProviderError):
    """Raised when every candidate provider failed for an operation."""

    pass


class CanineNoProvidersError(CanineProviderError):
    """Raised when there are no candidate providers to try at all."""

    pass


class CanineUploadIncompleteError(CanineProviderError):
    """Raised when some items of a staged upload could not be delivered.

    Items that did upload have already been committed on chain.
    """

    def __init__(self, message: str, failures: Optional[Dict[str, BaseException]] = None):
        super().__init__(message)
        self.failures = failures or {}


# Chain errors
class CanineChainConnectionError(CanineChainError):
    """Raised when the chain REST endpoint cannot be reached."""

    pass


class CanineNotFoundError(CanineChainError):
    """Raised when no tree leaf exists for the requested path and owner."""

    pass


class CanineBroadcastError(CanineChainError):
    """Raised when broadcasting a batch of messages fails."""

    pass
