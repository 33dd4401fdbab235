# ssb_publish/chain/publish.py
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple, Optional

from ssb_publish.chain.previous import resolve_previous
from ssb_publish.core.canon import to_legacy_json
from ssb_publish.core.errors import LegacyJsonEncodeFailed, PreviousMessageAuthorIsIncorrect
from ssb_publish.core.types import MessageValue, Multihash, Multikey, Multisig, PreviousMessage
from ssb_publish.crypto.hashing import message_key
from ssb_publish.crypto.keys import FeedKeyPair

logger = logging.getLogger(__name__)


class SigningStrategy(str, Enum):
    """
    What the signature is computed over.

    OMIT_SIGNATURE: the message encoded without a "signature" field. This is
    what legacy verifiers recompute.
    ZEROED_SIGNATURE: the message encoded with "signature" set to an all-zero
    signature. Only verifiers that do the same will accept it.
    """
    OMIT_SIGNATURE = "omit"
    ZEROED_SIGNATURE = "zeroed"


class OutputShape(str, Enum):
    VALUE = "value"      # the signed message value on its own
    WRAPPED = "wrapped"  # {"key": ..., "value": ...}


@dataclass(frozen=True)
class PublishConfig:
    signing_strategy: SigningStrategy = SigningStrategy.OMIT_SIGNATURE
    output_shape: OutputShape = OutputShape.VALUE

    @property
    def emit_wrapped(self) -> bool:
        return self.output_shape is OutputShape.WRAPPED


DEFAULT_CONFIG = PublishConfig()


class Published(NamedTuple):
    """Encoded message (in the configured output shape) and its message key."""
    data: bytes
    key: Multihash


def _legacy_timestamp(timestamp: Any) -> float:
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise LegacyJsonEncodeFailed(f"Timestamp must be a number, got {type(timestamp).__name__}")
    try:
        ts = float(timestamp)
    except OverflowError as e:
        raise LegacyJsonEncodeFailed(f"Timestamp {timestamp} is too large") from e
    if not math.isfinite(ts):
        raise LegacyJsonEncodeFailed(f"Timestamp must be finite, got {timestamp!r}")
    return ts


def link_message(
    previous: Optional[PreviousMessage],
    author: Multikey,
    content: Any,
    timestamp: float,
) -> MessageValue:
    """Build the next unsigned message of the feed that `previous` ends."""
    ts = _legacy_timestamp(timestamp)

    if previous is None:
        return MessageValue(author=author, sequence=1, timestamp=ts, content=content)

    # Refuse to splice another feed's history onto this one
    if previous.author != author:
        raise PreviousMessageAuthorIsIncorrect(str(author), str(previous.author))

    return MessageValue(
        author=author,
        sequence=previous.sequence + 1,
        timestamp=ts,
        content=content,
        previous=previous.key,
    )


def signable_bytes(message: MessageValue, strategy: SigningStrategy) -> bytes:
    if strategy is SigningStrategy.ZEROED_SIGNATURE:
        return to_legacy_json(message.with_signature(Multisig.zeroed()).to_legacy_dict())
    return to_legacy_json(message.to_legacy_dict(include_signature=False))


def sign_message(message: MessageValue, keys: FeedKeyPair, strategy: SigningStrategy) -> MessageValue:
    if message.signature is not None:
        raise ValueError("Cannot sign an already-signed message")
    signature = keys.sign_bytes(signable_bytes(message, strategy))
    return message.with_signature(Multisig.from_ed25519(signature))


def encode_message(message: MessageValue) -> bytes:
    """Final encoding of a signed message value."""
    return to_legacy_json(message.to_legacy_dict())


def finalize(message: MessageValue, value_bytes: bytes, key: Multihash, shape: OutputShape) -> bytes:
    """Outward-facing bytes: the encoded value itself, or a {key, value} wrapper around it."""
    if shape is OutputShape.WRAPPED:
        return to_legacy_json({"key": key, "value": message.to_legacy_dict()})
    return value_bytes


def publish(
    content: Any,
    previous: Optional[bytes],
    public_key: bytes,
    secret_key: bytes,
    timestamp: float,
    config: PublishConfig = DEFAULT_CONFIG,
) -> Published:
    """
    Publish a new message: resolve previous → link → sign → encode → hash.

    - Bring your own ed25519 keys (as bytes). The secret key may be a 32-byte
      seed or a 64-byte libsodium secret key.
    - Timestamps are used verbatim: a wall clock in milliseconds or any
      other finite number.
    - `previous` is the encoded previous message of this feed, or None for
      the first message.
    - Content may be a mapping, an encrypted "...box" string, or an object
      with `to_dict()`.

    Returns (data, key): the encoded message in the configured output shape
    and its message key.
    """
    with FeedKeyPair.from_bytes(public_key, secret_key) as keys:
        previous_message = resolve_previous(previous)
        unsigned = link_message(previous_message, keys.multikey, content, timestamp)
        signed = sign_message(unsigned, keys, config.signing_strategy)

    value_bytes = encode_message(signed)
    key = message_key(value_bytes)
    logger.debug("Published sequence %d for %s as %s", signed.sequence, signed.author, key)
    return Published(finalize(signed, value_bytes, key, config.output_shape), key)
