# ssb_publish/core/canon.py
"""
Legacy message JSON: the exact bytes `JSON.stringify(value, null, 2)` produces.

Signatures and message keys are computed over these bytes, so the encoder
must agree with every other implementation down to whitespace and number
formatting. Keys are written in insertion order, never sorted.
"""
import json
import math
from collections.abc import Mapping
from typing import Any, Dict, List, Tuple

from ssb_publish.core.errors import LegacyJsonEncodeFailed
from ssb_publish.core.types import IDENTIFIER_TYPES

INDENT = "  "

# Largest integer a JavaScript number holds exactly
MAX_SAFE_INTEGER = 2**53 - 1


def format_legacy_f64(value: float) -> str:
    """Format a float like ECMAScript's Number.prototype.toString."""
    if not math.isfinite(value):
        raise LegacyJsonEncodeFailed(f"Cannot encode non-finite number {value!r}")
    if value == 0:
        return "0"  # also -0

    sign = "-" if value < 0 else ""
    # repr() gives the shortest round-tripping digits, same as ECMAScript
    mantissa, _, exp = repr(abs(value)).partition("e")
    int_part, _, frac_part = mantissa.partition(".")
    digits = int_part + frac_part
    # value == 0.<digits> * 10**n
    n = len(int_part) + int(exp or 0)
    stripped = digits.lstrip("0")
    n -= len(digits) - len(stripped)
    digits = stripped.rstrip("0")
    k = len(digits)

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * -n + digits

    e = n - 1
    exponent = f"e{'+' if e >= 0 else '-'}{abs(e)}"
    if k == 1:
        return sign + digits + exponent
    return sign + digits[0] + "." + digits[1:] + exponent


def _encode_string(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _encode(value: Any, level: int) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, IDENTIFIER_TYPES):
        return _encode_string(value.to_legacy_string())
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, int):
        if abs(value) > MAX_SAFE_INTEGER:
            raise LegacyJsonEncodeFailed(f"Integer {value} is outside the safe range")
        return str(value)
    if isinstance(value, float):
        return format_legacy_f64(value)

    inner = INDENT * (level + 1)
    closing = INDENT * level
    if isinstance(value, Mapping):
        if not value:
            return "{}"
        members = []
        for k, v in value.items():
            if not isinstance(k, str):
                raise LegacyJsonEncodeFailed(f"Object keys must be strings, got {type(k).__name__}")
            members.append(f"{inner}{_encode_string(k)}: {_encode(v, level + 1)}")
        return "{\n" + ",\n".join(members) + "\n" + closing + "}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [inner + _encode(v, level + 1) for v in value]
        return "[\n" + ",\n".join(items) + "\n" + closing + "]"
    if hasattr(value, "to_dict"):
        return _encode(value.to_dict(), level)

    raise LegacyJsonEncodeFailed(f"Cannot encode value of type {type(value).__name__}")


def to_legacy_json(value: Any) -> bytes:
    """Encode `value` to legacy message JSON (UTF-8)."""
    try:
        return _encode(value, 0).encode("utf-8")
    except UnicodeEncodeError as e:
        raise LegacyJsonEncodeFailed(f"String is not valid unicode: {e}") from e
    except RecursionError as e:
        raise LegacyJsonEncodeFailed("Value is too deeply nested or cyclic") from e


def to_legacy_json_str(value: Any) -> str:
    """Same as above, but returns string (mostly for debugging)."""
    return to_legacy_json(value).decode("utf-8")


def _reject_duplicate_keys(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    for k, v in pairs:
        if k in d:
            raise ValueError(f"Duplicate key {k!r}")
        d[k] = v
    return d


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def from_legacy_json(data: bytes) -> Any:
    """
    Strictly decode legacy message JSON.
    Raises ValueError (including UnicodeDecodeError / JSONDecodeError) on bad input.
    """
    text = data.decode("utf-8")
    return json.loads(text, object_pairs_hook=_reject_duplicate_keys, parse_constant=_reject_constant)
