"""Regulatory compliance checks over an SOA section tree.

Checks are advisory: findings are sorted into critical issues and warnings
for reviewers at the approval steps and never block the workflow. Malformed
content is treated as absent, never as an error.
"""

from typing import Any, Dict, Iterable, List, Mapping

from pydantic import BaseModel, Field

from app.services.section_templates import REQUIRED_MAIN_SECTIONS
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Missing fields containing one of these tokens are treated as critical data
CRITICAL_FIELD_TOKENS = ("client", "income", "super")

MIN_MEANINGFUL_TEXT_LENGTH = 50
MIN_RECOMMENDATION_TEXT_LENGTH = 100

MISSING_SECTION_MESSAGES = {
    "M9": "M9 section (Agreement to Proceed) is missing - required for client signature",
}


class ComplianceReport(BaseModel):
    """Findings of one compliance pass."""

    critical_issues: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def has_critical_issues(self) -> bool:
        return bool(self.critical_issues)

    @property
    def issues(self) -> List[str]:
        return self.critical_issues + self.warnings


def _field(section: Any, name: str) -> Any:
    if isinstance(section, Mapping):
        return section.get(name)
    return getattr(section, name, None)


def _content(section: Any) -> Dict[str, Any]:
    content = _field(section, "content")
    return content if isinstance(content, Mapping) else {}


def _text(content: Mapping) -> str:
    text = content.get("text")
    return text if isinstance(text, str) else ""


def _missing_fields(section: Any) -> List[str]:
    value = _field(section, "missing_fields")
    if not value:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set)):
        value = [value]
    return [str(field) for field in value if field is not None and str(field).strip()]


def _has_meaningful_content(content: Mapping) -> bool:
    return (
        len(_text(content)) > MIN_MEANINGFUL_TEXT_LENGTH
        or bool(content.get("tables"))
        or bool(content.get("bullets"))
    )


class ComplianceValidator:
    """Classifies SOA findings into critical issues and warnings by fixed rules."""

    def validate(self, sections: Iterable[Any]) -> ComplianceReport:
        """Run all compliance rules.

        Args:
            sections: Section rows or mappings with ``section_key``, ``content``,
                ``sources`` and ``missing_fields``

        Returns:
            ComplianceReport with critical issues and warnings
        """
        sections = list(sections)
        by_key: Dict[str, Any] = {}
        for section in sections:
            section_key = _field(section, "section_key")
            if isinstance(section_key, str):
                by_key.setdefault(section_key, section)

        report = ComplianceReport()

        self._check_required_sections(by_key, report)
        self._check_missing_fields(sections, report)
        self._check_source_attribution(sections, report)
        self._check_fee_disclosure(by_key, report)
        self._check_recommendations(by_key, report)

        LOGGER.info(
            "Compliance check completed",
            extra={
                "sections": len(sections),
                "critical_issues": len(report.critical_issues),
                "warnings": len(report.warnings),
            }
        )
        return report

    def _check_required_sections(self, by_key: Dict[str, Any], report: ComplianceReport) -> None:
        for section_key in REQUIRED_MAIN_SECTIONS:
            section = by_key.get(section_key)
            if section is None:
                report.critical_issues.append(
                    MISSING_SECTION_MESSAGES.get(
                        section_key, f"Missing required section: {section_key} (ASIC RG 175 requirement)"
                    )
                )
            elif not _has_meaningful_content(_content(section)):
                report.warnings.append(
                    f"Section {section_key} exists but appears to be empty or placeholder content"
                )

    def _check_missing_fields(self, sections: List[Any], report: ComplianceReport) -> None:
        for section in sections:
            missing_fields = _missing_fields(section)
            if not missing_fields:
                continue

            section_key = _field(section, "section_key")
            critical_fields = [
                field for field in missing_fields
                if any(token in field for token in CRITICAL_FIELD_TOKENS)
            ]
            if critical_fields:
                report.critical_issues.append(
                    f"Section {section_key} missing critical data: {', '.join(critical_fields)}"
                )
            else:
                report.warnings.append(
                    f"Section {section_key} has missing data: {', '.join(missing_fields)}"
                )

    def _check_source_attribution(self, sections: List[Any], report: ComplianceReport) -> None:
        without_sources = sum(1 for section in sections if not _field(section, "sources"))
        if without_sources:
            report.warnings.append(
                f"{without_sources} section(s) lack source attribution (audit trail requirement)"
            )

    def _check_fee_disclosure(self, by_key: Dict[str, Any], report: ComplianceReport) -> None:
        section = by_key.get("M8")
        if section is None:
            return
        text = _text(_content(section)).lower()
        if "fee" not in text and "cost" not in text:
            report.warnings.append("M8 section may be missing fee disclosure information")

    def _check_recommendations(self, by_key: Dict[str, Any], report: ComplianceReport) -> None:
        section = by_key.get("M5")
        if section is None:
            return
        content = _content(section)
        has_recommendations = bool(content.get("tables")) or (
            len(_text(content)) > MIN_RECOMMENDATION_TEXT_LENGTH
        )
        if not has_recommendations:
            report.critical_issues.append("M5 section (Recommendations) appears incomplete or missing")


def validate_sections(sections: Iterable[Any]) -> ComplianceReport:
    return ComplianceValidator().validate(sections)
