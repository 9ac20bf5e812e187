"""
MapPool codec — compact, URL-safe, versioned pool strings.

Layout:
  <version char><base64url payload, no '=' padding>

The payload is one bit per (mode, stage) in canonical catalog order:
modes outer, stages inner, most significant bit first, zero padded to a
byte boundary. With 5 modes x 12 stages that is 60 bits -> 8 bytes ->
11 payload characters.

The version char is ALPHABET[CATALOG_VERSION], so a string produced against
a different mode/stage list is rejected instead of silently misparsed.
"""

from __future__ import annotations

import base64
import binascii
import string
from typing import Optional

from app.services.map_catalog import (
    CATALOG_VERSION,
    all_modes,
    all_stages,
    mode_count,
    stage_count,
)
from app.services.map_pool import InvalidPoolString, MapPool

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"
_ALPHABET_SET = frozenset(ALPHABET)

VERSION_CHAR = ALPHABET[CATALOG_VERSION]


def _total_bits() -> int:
    return mode_count() * stage_count()


def encode_map_pool(pool: MapPool) -> str:
    """Serialize *pool* to its canonical string. Same sets -> same string."""
    bits = 0
    for mode in all_modes():
        members = pool[mode.short]
        for stage in all_stages():
            bits = (bits << 1) | (1 if stage.id in members else 0)

    total = _total_bits()
    byte_len = (total + 7) // 8
    bits <<= byte_len * 8 - total

    payload = base64.urlsafe_b64encode(bits.to_bytes(byte_len, "big"))
    return VERSION_CHAR + payload.rstrip(b"=").decode("ascii")


def decode_map_pool(serialized: str) -> MapPool:
    """
    Parse a pool string produced by encode_map_pool.

    Raises InvalidPoolString on foreign characters, a version mismatch,
    undecodable base64 or a payload too short for the running catalog.
    An all-zero payload is a valid pool with every mode excluded.
    """
    if not isinstance(serialized, str) or not serialized:
        raise InvalidPoolString("Map pool string is empty")

    foreign = sorted({c for c in serialized if c not in _ALPHABET_SET})
    if foreign:
        raise InvalidPoolString(f"Map pool string contains invalid characters: {''.join(foreign)!r}")

    version, payload = serialized[0], serialized[1:]
    if version != VERSION_CHAR:
        raise InvalidPoolString(
            f"Map pool string version {version!r} does not match catalog version {VERSION_CHAR!r}"
        )

    try:
        data = base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4))
    except (binascii.Error, ValueError) as e:
        raise InvalidPoolString(f"Map pool string payload is not valid base64: {e}") from e

    total = _total_bits()
    available = len(data) * 8
    if available < total:
        raise InvalidPoolString(
            f"Map pool string too short: {available} bits, need {total}"
        )

    # Surplus trailing bits (byte padding or a longer payload) are ignored
    bits = int.from_bytes(data, "big") >> (available - total)

    stages = {}
    position = total - 1
    for mode in all_modes():
        members = set()
        for stage in all_stages():
            if (bits >> position) & 1:
                members.add(stage.id)
            position -= 1
        stages[mode.short] = members

    return MapPool(stages)


def serialized_string_or_default(serialized: Optional[str], default: MapPool) -> MapPool:
    """Decode a query-string value; absence means the caller's default pool."""
    if serialized is None or serialized == "":
        return default
    return decode_map_pool(serialized)
