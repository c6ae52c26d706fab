"""
Signature normalization for send/confirm results.

Submitters report a transaction signature in several shapes: a plain string,
a ``(signature, slot)`` pair, or a record exposing ``signature`` or ``txid``
whose value is itself a string or such a pair. Every shape collapses to one
string here.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Sequence

PRIMARY_FIELD = "signature"
ALTERNATE_FIELD = "txid"


class SignatureShape(Enum):
    TEXT = "text"
    PAIR = "pair"
    RECORD = "record"
    OTHER = "other"


def shape_of(value: Any) -> SignatureShape:
    if isinstance(value, str):
        return SignatureShape.TEXT
    if isinstance(value, (list, tuple)):
        return SignatureShape.PAIR
    if isinstance(value, Mapping) or _field(value, PRIMARY_FIELD) is not None or _field(value, ALTERNATE_FIELD) is not None:
        return SignatureShape.RECORD
    return SignatureShape.OTHER


def _field(value: Any, name: str) -> Optional[Any]:
    if isinstance(value, Mapping):
        return value.get(name)
    if isinstance(value, (str, bytes, list, tuple)) or value is None:
        return None
    return getattr(value, name, None)


def _stringify(value: Any) -> str:
    return "" if value is None else str(value)


def _from_pair(pair: Sequence[Any]) -> str:
    if not pair:
        return ""
    first = pair[0]
    return first if isinstance(first, str) else _stringify(first)


def normalize_signature(result: Any) -> str:
    """
    Collapse a send/confirm result into a signature string.

    Never raises. An empty string means no signature could be found and must
    be treated as a failure by the caller.
    """
    shape = shape_of(result)

    if shape is SignatureShape.TEXT:
        return result
    if shape is SignatureShape.PAIR:
        return _from_pair(result)
    if shape is SignatureShape.RECORD:
        for name in (PRIMARY_FIELD, ALTERNATE_FIELD):
            value = _field(result, name)
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                return _from_pair(value)
            return _stringify(value)
        return ""
    return _stringify(result)
