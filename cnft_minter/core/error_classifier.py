"""
Mint failure classification.

Raw failure messages are matched against an ordered pattern table, first
match wins. The table and the retry rule are plain data so the policy can be
tested apart from submission.
"""

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from cnft_minter.exceptions import ClassifiedError, ErrorKind

CLASSIFICATION_RULES: Tuple[Tuple[Tuple[str, ...], ErrorKind], ...] = (
    (("duplicate instruction",), ErrorKind.DUPLICATE_INSTRUCTION),
    (("InvalidCollectionAuthority", "6028", "0x178c"), ErrorKind.COLLECTION_AUTHORITY_MISMATCH),
    (("TreeAuthorityIncorrect", "6016", "0x1780"), ErrorKind.TREE_AUTHORITY_MISMATCH),
    (("Authority",), ErrorKind.GENERIC_AUTHORITY_MISMATCH),
    (("Collection",), ErrorKind.GENERIC_COLLECTION_ERROR),
    (("Tree",), ErrorKind.GENERIC_TREE_ERROR),
    (("User rejected",), ErrorKind.USER_REJECTED),
)

# Kinds an alternate request shape without collection verification may fix:
# every collection or authority failure gets the single retry.
RETRYABLE_KINDS: FrozenSet[ErrorKind] = frozenset({
    ErrorKind.COLLECTION_AUTHORITY_MISMATCH,
    ErrorKind.TREE_AUTHORITY_MISMATCH,
    ErrorKind.GENERIC_AUTHORITY_MISMATCH,
    ErrorKind.GENERIC_COLLECTION_ERROR,
})

KIND_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.DUPLICATE_INSTRUCTION: "Duplicate instructions: remove manual priority fees.",
    ErrorKind.COLLECTION_AUTHORITY_MISMATCH: "Collection authority issue: use verified=false for public minting.",
    ErrorKind.TREE_AUTHORITY_MISMATCH: "Tree not public: recreate with public=true.",
    ErrorKind.GENERIC_AUTHORITY_MISMATCH: "Authority mismatch: use verified=false.",
    ErrorKind.GENERIC_COLLECTION_ERROR: "Invalid collection mint: double-check the collection address.",
    ErrorKind.GENERIC_TREE_ERROR: "Invalid Merkle tree: double-check the tree address.",
    ErrorKind.USER_REJECTED: "Mint cancelled: user rejected signature.",
}


def classify_message(
    raw_message: str,
    rules: Sequence[Tuple[Tuple[str, ...], ErrorKind]] = CLASSIFICATION_RULES,
) -> ErrorKind:
    for patterns, kind in rules:
        if any(pattern in raw_message for pattern in patterns):
            return kind
    return ErrorKind.UNCLASSIFIED_MINT_FAILURE


def should_retry(kind: ErrorKind) -> bool:
    """Whether a failure of this kind earns the single alternate-shape retry."""
    return kind in RETRYABLE_KINDS


def message_for(kind: ErrorKind, raw_message: str) -> str:
    if kind in KIND_MESSAGES:
        return KIND_MESSAGES[kind]
    return f"Mint failed: {raw_message}"


def classify(raw_message: str, logs: Optional[List[str]] = None) -> ClassifiedError:
    """Build the ClassifiedError surfaced for a raw failure message."""
    kind = classify_message(raw_message)
    return ClassifiedError(kind, raw_message=raw_message, message=message_for(kind, raw_message), logs=logs)
