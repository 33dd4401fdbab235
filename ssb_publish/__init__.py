# ssb_publish/__init__.py
"""
ssb-publish — build signed, hash-chained Secure Scuttlebutt feed messages.

Bring your own ed25519 keys and the previous message of your feed; get back the
legacy-encoded new message and its %...sha256 key, byte-compatible with the
rest of the ecosystem.
"""

from ssb_publish.chain.feed import Feed
from ssb_publish.chain.publish import (
    DEFAULT_CONFIG,
    OutputShape,
    PublishConfig,
    Published,
    SigningStrategy,
    publish,
)
from ssb_publish.core.errors import (
    InvalidPreviousMessage,
    InvalidPublicKey,
    InvalidSecretKey,
    LegacyJsonEncodeFailed,
    PreviousMessageAuthorIsIncorrect,
    PublishError,
)
from ssb_publish.core.types import Contact, Multihash, Multikey, Multisig, Target

__version__ = "0.1.0"

__all__ = [
    "publish",
    "Feed",
    "PublishConfig",
    "DEFAULT_CONFIG",
    "SigningStrategy",
    "OutputShape",
    "Published",
    "Contact",
    "Multihash",
    "Multikey",
    "Multisig",
    "Target",
    "PublishError",
    "InvalidPreviousMessage",
    "InvalidPublicKey",
    "InvalidSecretKey",
    "PreviousMessageAuthorIsIncorrect",
    "LegacyJsonEncodeFailed",
]
