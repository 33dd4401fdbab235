# ssb_publish/core/encoding.py
import base64
import binascii


def b64_encode(data: bytes) -> str:
    """Encode bytes to standard base64 (with padding), as used in legacy identifiers."""
    return base64.b64encode(data).decode("ascii")


def b64_decode(s: str) -> bytes:
    """
    Decode standard base64, rejecting anything that would not re-encode to `s`.
    Identifiers are compared textually, so only the canonical spelling is accepted.
    """
    try:
        data = base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64: {e}") from e
    if b64_encode(data) != s:
        raise ValueError("Non-canonical base64")
    return data


def node_buffer_binary(text: str) -> bytes:
    """
    Convert a string to bytes the way node's Buffer does with the "binary" encoding:
    one byte per UTF-16 code unit, keeping only the low 8 bits.

    Characters above U+00FF are truncated and astral characters become two bytes
    (one per surrogate). Message identifiers are hashed over this byte stream,
    not over UTF-8.
    """
    return text.encode("utf-16-le", "surrogatepass")[::2]
