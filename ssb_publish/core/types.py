# ssb_publish/core/types.py
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from ssb_publish.core.encoding import b64_encode, b64_decode

ED25519 = "ed25519"
SHA256 = "sha256"

ED25519_KEY_LENGTH = 32
ED25519_SIGNATURE_LENGTH = 64
SHA256_DIGEST_LENGTH = 32


class Target(Enum):
    """What kind of object a Multihash points at. Decides the sigil."""
    MESSAGE = "%"
    BLOB = "&"


def _strip_suffix(text: str, suffix: str, kind: str) -> str:
    if not text.endswith(suffix):
        raise ValueError(f"{kind} must end with '{suffix}': {text!r}")
    return text[: -len(suffix)]


@dataclass(frozen=True)
class Multikey:
    """Public key of a feed author, rendered as @<base64>.ed25519"""
    key: bytes
    algorithm: str = ED25519

    def __post_init__(self):
        if self.algorithm != ED25519:
            raise ValueError(f"Unsupported key algorithm: {self.algorithm}")
        if len(self.key) != ED25519_KEY_LENGTH:
            raise ValueError(f"ed25519 public key must be {ED25519_KEY_LENGTH} bytes, got {len(self.key)}")

    @classmethod
    def from_ed25519(cls, key: bytes) -> "Multikey":
        return cls(key=bytes(key))

    @classmethod
    def from_legacy(cls, text: str) -> "Multikey":
        if not text.startswith("@"):
            raise ValueError(f"Multikey must start with '@': {text!r}")
        body = _strip_suffix(text[1:], "." + ED25519, "Multikey")
        return cls(key=b64_decode(body))

    def to_legacy_string(self) -> str:
        return f"@{b64_encode(self.key)}.{self.algorithm}"

    def __str__(self) -> str:
        return self.to_legacy_string()


@dataclass(frozen=True)
class Multisig:
    """Detached signature, rendered as <base64>.sig.ed25519"""
    signature: bytes
    algorithm: str = ED25519

    def __post_init__(self):
        if self.algorithm != ED25519:
            raise ValueError(f"Unsupported signature algorithm: {self.algorithm}")
        if len(self.signature) != ED25519_SIGNATURE_LENGTH:
            raise ValueError(
                f"ed25519 signature must be {ED25519_SIGNATURE_LENGTH} bytes, got {len(self.signature)}"
            )

    @classmethod
    def from_ed25519(cls, signature: bytes) -> "Multisig":
        return cls(signature=bytes(signature))

    @classmethod
    def zeroed(cls) -> "Multisig":
        """Placeholder signature used when signing with the signature field present."""
        return cls(signature=bytes(ED25519_SIGNATURE_LENGTH))

    @classmethod
    def from_legacy(cls, text: str) -> "Multisig":
        body = _strip_suffix(text, ".sig." + ED25519, "Multisig")
        return cls(signature=b64_decode(body))

    def to_legacy_string(self) -> str:
        return f"{b64_encode(self.signature)}.sig.{self.algorithm}"

    def __str__(self) -> str:
        return self.to_legacy_string()


@dataclass(frozen=True)
class Multihash:
    """Content identifier: %<base64>.sha256 for messages, &<base64>.sha256 for blobs."""
    digest: bytes
    target: Target = Target.MESSAGE
    algorithm: str = SHA256

    def __post_init__(self):
        if self.algorithm != SHA256:
            raise ValueError(f"Unsupported hash algorithm: {self.algorithm}")
        if len(self.digest) != SHA256_DIGEST_LENGTH:
            raise ValueError(f"sha256 digest must be {SHA256_DIGEST_LENGTH} bytes, got {len(self.digest)}")

    @classmethod
    def from_sha256(cls, digest: bytes, target: Target) -> "Multihash":
        return cls(digest=bytes(digest), target=target)

    @classmethod
    def from_legacy(cls, text: str) -> "Multihash":
        try:
            target = Target(text[:1])
        except ValueError:
            raise ValueError(f"Multihash must start with '%' or '&': {text!r}") from None
        body = _strip_suffix(text[1:], "." + SHA256, "Multihash")
        return cls(digest=b64_decode(body), target=target)

    def to_legacy_string(self) -> str:
        return f"{self.target.value}{b64_encode(self.digest)}.{self.algorithm}"

    def __str__(self) -> str:
        return self.to_legacy_string()


IDENTIFIER_TYPES = (Multikey, Multisig, Multihash)


@dataclass(frozen=True)
class MessageValue:
    """A single entry of a feed. `signature` is None until signed."""
    author: Multikey
    sequence: int
    timestamp: float
    content: Any
    previous: Optional[Multihash] = None
    hash: str = SHA256
    signature: Optional[Multisig] = None

    def with_signature(self, signature: Optional[Multisig]) -> "MessageValue":
        return replace(self, signature=signature)

    def to_legacy_dict(self, include_signature: bool = True) -> Dict[str, Any]:
        """
        Field order matters: it is the order the legacy encoder writes keys in,
        and signatures are computed over that encoding.
        """
        d: Dict[str, Any] = {
            "previous": self.previous,
            "author": self.author,
            "sequence": self.sequence,
            "timestamp": self.timestamp,
            "hash": self.hash,
            "content": self.content,
        }
        if include_signature:
            d["signature"] = self.signature
        return d


@dataclass(frozen=True)
class PreviousMessage:
    """The fields of the previous entry needed to link the next one."""
    key: Multihash
    author: Multikey
    sequence: int
    timestamp: float


@dataclass(frozen=True)
class Contact:
    """Follow / block another feed."""
    contact: Multikey
    following: bool
    blocking: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "contact",
            "contact": self.contact,
            "following": self.following,
            "blocking": self.blocking,
        }
