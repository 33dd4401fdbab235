# ssb_publish/chain/previous.py
import logging
import math
from typing import Any, Dict, Optional

from ssb_publish.core.canon import from_legacy_json, to_legacy_json
from ssb_publish.core.errors import InvalidPreviousMessage
from ssb_publish.core.types import Multihash, Multikey, PreviousMessage
from ssb_publish.crypto.hashing import message_key

logger = logging.getLogger(__name__)


def _sequence(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"sequence must be a number, got {type(value).__name__}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"sequence must be an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"sequence must be at least 1, got {value!r}")
    return int(value)


def _timestamp(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"timestamp must be a number, got {type(value).__name__}")
    ts = float(value)
    if not math.isfinite(ts):
        raise ValueError(f"timestamp must be finite, got {value!r}")
    return ts


def _view(value: Dict[str, Any], key: Multihash) -> PreviousMessage:
    for name in ("previous", "author", "sequence", "timestamp"):
        if name not in value:
            raise ValueError(f"missing field '{name}'")

    author = value["author"]
    if not isinstance(author, str):
        raise ValueError("author must be a string")
    previous = value["previous"]
    if previous is not None:
        if not isinstance(previous, str):
            raise ValueError("previous must be null or a string")
        Multihash.from_legacy(previous)

    return PreviousMessage(
        key=key,
        author=Multikey.from_legacy(author),
        sequence=_sequence(value["sequence"]),
        timestamp=_timestamp(value["timestamp"]),
    )


def _is_wrapped(decoded: Dict[str, Any]) -> bool:
    return set(decoded) == {"key", "value"} and isinstance(decoded["value"], dict)


def resolve_previous(previous: Optional[bytes]) -> Optional[PreviousMessage]:
    """
    Decode the previous message of a feed into the fields needed for chaining.

    Accepts either the encoded message value, or a {"key", "value"} wrapper
    whose key must match the value. Returns None when there is no previous
    message (first entry of a feed).
    """
    if previous is None:
        return None

    previous = bytes(previous)
    try:
        decoded = from_legacy_json(previous)
        if not isinstance(decoded, dict):
            raise ValueError(f"expected a JSON object, got {type(decoded).__name__}")

        if _is_wrapped(decoded):
            stated = Multihash.from_legacy(decoded["key"])
            value = decoded["value"]
            key = message_key(to_legacy_json(value))
            if key != stated:
                raise ValueError(f"key {stated} does not match its value (computed {key})")
            logger.debug("Previous message is wrapped, key %s", key)
        else:
            value = decoded
            key = message_key(previous)

        view = _view(value, key)
    except (ValueError, TypeError, RecursionError) as e:
        raise InvalidPreviousMessage(str(e), previous) from e

    logger.debug("Resolved previous message %s (sequence %d)", view.key, view.sequence)
    return view
