from app.utils.section_keys import (
    dedupe_by_key,
    parse_section_key,
    sort_section_keys,
)


class TestParseSectionKey:

    def test_levels(self):
        assert parse_section_key("M3") == (3,)
        assert parse_section_key("M3_S7") == (3, 7)
        assert parse_section_key("M4_S4_SS2") == (4, 4, 2)

    def test_unparseable_key(self):
        assert parse_section_key("intro") == ()


class TestSortSectionKeys:

    def test_numeric_not_lexical(self):
        assert sort_section_keys(["M10", "M2", "M1"]) == ["M1", "M2", "M10"]

    def test_parent_before_children(self):
        keys = ["M3_S10", "M3_S2", "M3", "M3_S7_SS1", "M3_S7", "M4"]
        assert sort_section_keys(keys) == ["M3", "M3_S2", "M3_S7", "M3_S7_SS1", "M3_S10", "M4"]

    def test_order_is_independent_of_input_order(self):
        keys = ["M7_S3_SS2", "M1", "M7_S3", "M7", "M7_S3_SS1", "M2"]
        assert sort_section_keys(keys) == sort_section_keys(list(reversed(keys)))

    def test_unparseable_keys_sort_first_and_stably(self):
        assert sort_section_keys(["M1", "zeta", "alpha"]) == ["alpha", "zeta", "M1"]

    def test_duplicates_collapse(self):
        assert sort_section_keys(["M2", "M1", "M2"]) == ["M1", "M2"]


def test_dedupe_keeps_first_occurrence():
    items = [("M1", "first"), ("M2", "x"), ("M1", "second")]
    assert dedupe_by_key(items, key=lambda item: item[0]) == [("M1", "first"), ("M2", "x")]
