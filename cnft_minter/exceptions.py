"""
Custom Exception Classes

This module defines the exception hierarchy for the minter so callers can
tell a soft rejection from a classified mint failure.
"""

from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    """Categories every surfaced failure is classified into."""
    CONNECTION_REQUIRED = "connection_required"
    DEBOUNCE_REJECTED = "debounce_rejected"
    RESOLUTION_UNAVAILABLE = "resolution_unavailable"
    MISSING_SIGNATURE = "missing_signature"
    DUPLICATE_INSTRUCTION = "duplicate_instruction"
    COLLECTION_AUTHORITY_MISMATCH = "collection_authority_mismatch"
    TREE_AUTHORITY_MISMATCH = "tree_authority_mismatch"
    GENERIC_AUTHORITY_MISMATCH = "generic_authority_mismatch"
    GENERIC_COLLECTION_ERROR = "generic_collection_error"
    GENERIC_TREE_ERROR = "generic_tree_error"
    USER_REJECTED = "user_rejected"
    UNCLASSIFIED_MINT_FAILURE = "unclassified_mint_failure"


class MinterError(Exception):
    """Base exception for the minter."""

    pass


class SubmissionError(MinterError):
    """Raised by a transaction submitter when sending or confirming fails."""

    def __init__(self, message: str, logs: Optional[List[str]] = None):
        super().__init__(message)
        self.raw_message = message
        self.logs = logs or []


class ClassifiedError(MinterError):
    """A failure bound to an ErrorKind and a human readable message."""

    def __init__(
        self,
        kind: ErrorKind,
        raw_message: str = "",
        message: Optional[str] = None,
        logs: Optional[List[str]] = None,
    ):
        self.kind = kind
        self.raw_message = raw_message
        self.message = message or raw_message or kind.value
        self.logs = logs or []
        super().__init__(self.message)


class ConnectionRequiredError(ClassifiedError):
    """Raised when no wallet identity is connected."""

    def __init__(self, message: str = "Wallet not connected: please connect your Solana wallet first."):
        super().__init__(ErrorKind.CONNECTION_REQUIRED, message=message)


class DebounceRejectedError(ClassifiedError):
    """Raised when a mint is attempted inside the debounce window."""

    def __init__(self, retry_after_ms: int):
        super().__init__(
            ErrorKind.DEBOUNCE_REJECTED,
            message="Please wait a few seconds before minting again.",
        )
        self.retry_after_ms = retry_after_ms


class MissingSignatureError(ClassifiedError):
    """Raised when a submission succeeded but yielded no usable signature."""

    def __init__(self, raw_message: str = ""):
        super().__init__(
            ErrorKind.MISSING_SIGNATURE,
            raw_message=raw_message,
            message="Missing transaction signature from send/confirm result.",
        )
