from app.services.compliance_validator import ComplianceValidator, validate_sections


def section(key, text="", tables=None, sources=None, missing_fields=None):
    content = {"text": text}
    if tables:
        content["tables"] = tables
    return {
        "section_key": key,
        "content": content,
        "sources": sources if sources is not None else [{"source_doc_name": "fact_find.pdf"}],
        "missing_fields": missing_fields or [],
    }


LONG_TEXT = "The recommended strategy includes fee and cost disclosure. " * 3


def complete_tree():
    return [section(key, LONG_TEXT) for key in ("M1", "M2", "M5", "M8", "M9", "M10")]


class TestComplianceValidator:

    def test_complete_tree_has_no_findings(self):
        report = ComplianceValidator().validate(complete_tree())

        assert report.critical_issues == []
        assert report.warnings == []
        assert not report.has_critical_issues

    def test_missing_required_sections(self):
        sections = [s for s in complete_tree() if s["section_key"] not in ("M5", "M9")]

        report = validate_sections(sections)

        assert report.critical_issues == [
            "Missing required section: M5 (ASIC RG 175 requirement)",
            "M9 section (Agreement to Proceed) is missing - required for client signature",
        ]

    def test_placeholder_content_is_a_warning(self):
        sections = complete_tree()
        sections[0] = section("M1", "TBD")

        report = validate_sections(sections)

        assert report.warnings == ["Section M1 exists but appears to be empty or placeholder content"]

    def test_incomplete_recommendations_are_critical(self):
        sections = complete_tree()
        sections[2] = section("M5", "Short but meaningful recommendation text for the client.")

        report = validate_sections(sections)

        assert report.critical_issues == ["M5 section (Recommendations) appears incomplete or missing"]

    def test_recommendation_table_is_enough(self):
        sections = complete_tree()
        sections[2] = section("M5", tables=[{"headers": ["Recommendation"], "rows": [["Salary sacrifice"]]}])

        report = validate_sections(sections)

        assert report.critical_issues == []

    def test_missing_fields_split_by_criticality(self):
        sections = complete_tree() + [
            section("M3_S3", LONG_TEXT, missing_fields=["client1_gross_income", "rent"]),
            section("M4_S1", LONG_TEXT, missing_fields=["asset_list"]),
        ]

        report = validate_sections(sections)

        assert "Section M3_S3 missing critical data: client1_gross_income" in report.critical_issues
        assert "Section M4_S1 has missing data: asset_list" in report.warnings

    def test_source_attribution_and_fee_disclosure(self):
        sections = complete_tree()
        sections[3] = section("M8", "A" * 80, sources=[])

        report = validate_sections(sections)

        assert "1 section(s) lack source attribution (audit trail requirement)" in report.warnings
        assert "M8 section may be missing fee disclosure information" in report.warnings

    def test_accepts_orm_like_objects(self):
        class Row:
            def __init__(self, data):
                self.__dict__.update(data)

        report = validate_sections([Row(s) for s in complete_tree()])

        assert report.issues == []

    def test_malformed_content_is_treated_as_absent(self):
        sections = complete_tree()
        sections[0] = {"section_key": "M1", "content": {"text": 123}, "sources": [{"source_doc_name": "a"}]}
        sections[2] = {"section_key": "M5", "content": ["not", "a", "mapping"], "sources": [{"source_doc_name": "a"}]}
        sections[3] = {"section_key": "M8", "content": {"text": None}, "sources": [{"source_doc_name": "a"}]}

        report = validate_sections(sections)

        assert report.critical_issues == ["M5 section (Recommendations) appears incomplete or missing"]
        assert "Section M1 exists but appears to be empty or placeholder content" in report.warnings
        assert "M8 section may be missing fee disclosure information" in report.warnings

    def test_odd_missing_fields_are_coerced(self):
        sections = complete_tree() + [
            section("M3_S1", LONG_TEXT, missing_fields=[None, 42, "client1_dob"]),
            {"section_key": "M4_S1", "content": {"text": LONG_TEXT}, "sources": [{}], "missing_fields": "asset_list"},
        ]

        report = validate_sections(sections)

        assert "Section M3_S1 missing critical data: client1_dob" in report.critical_issues
        assert "Section M4_S1 has missing data: asset_list" in report.warnings

    def test_sections_without_string_keys_are_ignored_for_lookup(self):
        sections = complete_tree() + [{"section_key": ["M1"], "content": "oops"}, {}]

        report = validate_sections(sections)

        assert report.critical_issues == []
        assert "2 section(s) lack source attribution (audit trail requirement)" in report.warnings
