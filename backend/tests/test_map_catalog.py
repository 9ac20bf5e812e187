"""
Tests for the map catalog — canonical order and lookups.
"""

from app.services.map_catalog import (
    CATALOG_VERSION,
    MODE_CODES,
    STAGE_IDS,
    all_modes,
    all_stages,
    mode_by_code,
    mode_index,
    stage_by_id,
    stage_count,
)


class TestCanonicalOrder:

    def test_modes_in_index_order(self):
        assert [m.index for m in all_modes()] == list(range(len(all_modes())))
        assert MODE_CODES == ("TW", "SZ", "TC", "RM", "CB")

    def test_stage_ids_are_catalog_indexes(self):
        assert [s.id for s in all_stages()] == list(range(stage_count()))
        assert STAGE_IDS == tuple(range(stage_count()))

    def test_mode_index_is_sort_key(self):
        assert sorted(["CB", "SZ", "TW"], key=mode_index) == ["TW", "SZ", "CB"]

    def test_version_fits_one_char_prefix(self):
        assert 0 <= CATALOG_VERSION < 64


class TestLookups:

    def test_mode_by_code(self):
        sz = mode_by_code("SZ")
        assert sz is not None
        assert sz.name == "Splat Zones"

    def test_unknown_mode(self):
        assert mode_by_code("XX") is None
        assert mode_by_code("sz") is None

    def test_stage_by_id(self):
        assert stage_by_id(0) is not None
        assert stage_by_id(stage_count() - 1) is not None

    def test_unknown_stage(self):
        assert stage_by_id(-1) is None
        assert stage_by_id(stage_count()) is None
