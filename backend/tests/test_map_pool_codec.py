"""
Tests for the MapPool codec — canonical, versioned pool strings.
"""

import random

import pytest

from app.services.map_catalog import MODE_CODES, STAGE_IDS
from app.services.map_pool import DEFAULT_MAP_POOL, InvalidPoolString, MapPool
from app.services.map_pool_codec import (
    ALPHABET,
    VERSION_CHAR,
    decode_map_pool,
    encode_map_pool,
    serialized_string_or_default,
)


def _random_pool(rng: random.Random) -> MapPool:
    return MapPool({
        mode: [s for s in STAGE_IDS if rng.random() < 0.5]
        for mode in MODE_CODES
    })


class TestKnownStrings:
    """Bit layout: modes outer, stages inner, MSB first."""

    def test_empty_pool(self):
        assert encode_map_pool(MapPool.empty()) == "BAAAAAAAAAAA"

    def test_full_pool(self):
        full = MapPool({mode: STAGE_IDS for mode in MODE_CODES})
        assert encode_map_pool(full) == "B" + "_" * 10 + "A"

    def test_single_splat_zones_stage(self):
        # SZ is mode index 1 -> bit 12 of the stream -> byte 1 = 0x08
        assert encode_map_pool(MapPool({"SZ": [0]})) == "BAAgAAAAAAAA"

    def test_version_prefix(self):
        assert encode_map_pool(DEFAULT_MAP_POOL)[0] == VERSION_CHAR

    def test_only_url_safe_characters(self):
        s = encode_map_pool(DEFAULT_MAP_POOL)
        assert all(c in ALPHABET for c in s)
        assert "=" not in s


class TestRoundTrip:

    def test_default_pool(self):
        assert decode_map_pool(encode_map_pool(DEFAULT_MAP_POOL)) == DEFAULT_MAP_POOL

    def test_empty_pool_is_valid(self):
        decoded = decode_map_pool(encode_map_pool(MapPool.empty()))
        assert decoded == MapPool.empty()
        assert decoded.is_empty()

    def test_shared_stages_across_modes(self):
        pool = MapPool({"SZ": [3, 4], "TC": [3], "CB": [4, 11]})
        assert decode_map_pool(encode_map_pool(pool)) == pool

    def test_random_pools(self):
        rng = random.Random(7)
        for _ in range(50):
            pool = _random_pool(rng)
            assert decode_map_pool(encode_map_pool(pool)) == pool


class TestCanonicalIndependence:

    def test_insertion_order_does_not_matter(self):
        a = MapPool({"SZ": [5, 1, 9], "RM": [0, 2]})
        b = MapPool({"RM": [2, 0], "SZ": [9, 5, 1]})
        assert encode_map_pool(a) == encode_map_pool(b)

    def test_toggle_back_gives_same_string(self):
        s = encode_map_pool(DEFAULT_MAP_POOL)
        assert encode_map_pool(DEFAULT_MAP_POOL.toggle("TC", 4).toggle("TC", 4)) == s

    def test_different_pools_different_strings(self):
        assert encode_map_pool(MapPool({"SZ": [0]})) != encode_map_pool(MapPool({"TC": [0]}))


class TestDecodeRejects:

    @pytest.mark.parametrize("bad", [
        "###not-valid###",
        "BAAAA AAAAAAA",
        "BAAAAAAAAAA=",
        "BAAAAAAAAAA+",
    ])
    def test_foreign_characters(self, bad):
        with pytest.raises(InvalidPoolString):
            decode_map_pool(bad)

    def test_empty_string(self):
        with pytest.raises(InvalidPoolString):
            decode_map_pool("")

    def test_version_mismatch(self):
        valid = encode_map_pool(DEFAULT_MAP_POOL)
        other_version = "A" if VERSION_CHAR != "A" else "C"
        with pytest.raises(InvalidPoolString, match="version"):
            decode_map_pool(other_version + valid[1:])

    def test_too_short(self):
        with pytest.raises(InvalidPoolString, match="too short"):
            decode_map_pool(VERSION_CHAR + "AAAA")

    def test_prefix_only(self):
        with pytest.raises(InvalidPoolString):
            decode_map_pool(VERSION_CHAR)

    def test_impossible_base64_length(self):
        with pytest.raises(InvalidPoolString):
            decode_map_pool(VERSION_CHAR + "A" * 13)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode_map_pool("!!")


class TestLenientTail:

    def test_surplus_payload_ignored(self):
        s = encode_map_pool(DEFAULT_MAP_POOL)
        assert decode_map_pool(s + "AAAA") == DEFAULT_MAP_POOL


class TestDefaultFallback:

    def test_none_gives_default(self):
        assert serialized_string_or_default(None, DEFAULT_MAP_POOL) is DEFAULT_MAP_POOL

    def test_empty_gives_default(self):
        assert serialized_string_or_default("", DEFAULT_MAP_POOL) is DEFAULT_MAP_POOL

    def test_value_is_decoded(self):
        pool = MapPool({"SZ": [1]})
        assert serialized_string_or_default(encode_map_pool(pool), DEFAULT_MAP_POOL) == pool

    def test_invalid_value_raises(self):
        with pytest.raises(InvalidPoolString):
            serialized_string_or_default("???", DEFAULT_MAP_POOL)
