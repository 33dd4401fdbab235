# ssb_publish/crypto/keys.py
import json
from pathlib import Path
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from ssb_publish.core.encoding import b64_decode
from ssb_publish.core.errors import InvalidPublicKey, InvalidSecretKey
from ssb_publish.core.types import ED25519, ED25519_KEY_LENGTH, Multikey

SEED_LENGTH = 32
# libsodium / SSB secret keys are seed || public key
EXPANDED_SECRET_LENGTH = 64


def _raw_public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


class FeedKeyPair:
    """
    Ed25519 keypair of a feed author, held for the duration of a publish call.

    Use as a context manager: the private key is dropped on exit, including
    when an exception escapes the block.
    """

    def __init__(self, public_key: Ed25519PublicKey, private_key: Optional[Ed25519PrivateKey] = None):
        self._public = public_key
        self._private = private_key
        self.public_bytes = _raw_public_bytes(public_key)

    @classmethod
    def from_public_bytes(cls, public_key: bytes) -> "FeedKeyPair":
        if len(public_key) != ED25519_KEY_LENGTH:
            raise InvalidPublicKey(f"Public key must be {ED25519_KEY_LENGTH} bytes, got {len(public_key)}")
        try:
            return cls(Ed25519PublicKey.from_public_bytes(bytes(public_key)))
        except ValueError as e:
            raise InvalidPublicKey(f"Invalid public key: {e}") from e

    @classmethod
    def from_bytes(cls, public_key: bytes, secret_key: bytes) -> "FeedKeyPair":
        """
        Build a signing keypair from raw bytes.
        secret_key is either a 32-byte seed or a 64-byte seed || public key.
        """
        verifier = cls.from_public_bytes(public_key)

        if len(secret_key) not in (SEED_LENGTH, EXPANDED_SECRET_LENGTH):
            raise InvalidSecretKey(
                f"Secret key must be {SEED_LENGTH} or {EXPANDED_SECRET_LENGTH} bytes, got {len(secret_key)}"
            )
        seed = bytes(secret_key[:SEED_LENGTH])
        try:
            private = Ed25519PrivateKey.from_private_bytes(seed)
        except ValueError as e:
            raise InvalidSecretKey(f"Invalid secret key: {e}") from e

        derived = _raw_public_bytes(private.public_key())
        if len(secret_key) == EXPANDED_SECRET_LENGTH and bytes(secret_key[SEED_LENGTH:]) != derived:
            raise InvalidSecretKey("Secret key is corrupt: embedded public key does not match its seed")
        if derived != verifier.public_bytes:
            raise InvalidSecretKey("Secret key does not belong to the given public key")

        return cls(verifier._public, private)

    @classmethod
    def from_secret_file(cls, path: Union[str, Path]) -> "FeedKeyPair":
        return cls.from_bytes(*load_secret_file(path))

    @property
    def multikey(self) -> Multikey:
        return Multikey.from_ed25519(self.public_bytes)

    @property
    def can_sign(self) -> bool:
        return self._private is not None

    def sign_bytes(self, data: bytes) -> bytes:
        """Detached Ed25519 signature over exactly `data`."""
        if self._private is None:
            raise InvalidSecretKey("No secret key available for signing")
        return self._private.sign(data)

    def verify_bytes(self, signature: bytes, data: bytes) -> bool:
        try:
            self._public.verify(signature, data)
            return True
        except InvalidSignature:
            return False

    def close(self) -> None:
        self._private = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def load_secret_file(path: Union[str, Path]) -> Tuple[bytes, bytes]:
    """
    Read an SSB `secret` file: JSON with "public" and "private" fields,
    possibly surrounded by '#' comment lines.
    Returns (public_key, secret_key) as raw bytes.
    """
    suffix = "." + ED25519
    try:
        text = Path(path).read_bytes().decode("utf-8")
        body = "\n".join(line for line in text.splitlines() if not line.lstrip().startswith("#"))
        secret = json.loads(body)
        public = Multikey.from_legacy("@" + secret["public"].lstrip("@")).key
        private_text = secret["private"]
        if not private_text.endswith(suffix):
            raise ValueError(f"private key must end with '{suffix}'")
        private = b64_decode(private_text[: -len(suffix)])
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise InvalidSecretKey(f"Could not read secret file {path}: {e}") from e
    return public, private
