# ssb_publish/crypto/hashing.py
import hashlib

from ssb_publish.core.encoding import node_buffer_binary
from ssb_publish.core.types import Multihash, Target


def message_key(value_bytes: bytes) -> Multihash:
    """
    Message key (%...sha256) of an encoded message value.

    The digest is taken over the node "binary" transcoding of the JSON text,
    not over its UTF-8 bytes; the two differ as soon as the message contains
    a non-ASCII character.
    """
    hashable = node_buffer_binary(value_bytes.decode("utf-8"))
    return Multihash.from_sha256(hashlib.sha256(hashable).digest(), Target.MESSAGE)
