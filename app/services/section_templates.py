"""Statement of Advice section catalogue.

The catalogue defines every section an SOA may contain: its key, title,
position in the hierarchy, expected content shape and the data fields the
generator must find in the source documents.
"""

from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.exceptions import TemplateNotFoundError
from app.utils.section_keys import sort_section_keys

ContentType = Literal["text", "table", "bullets", "mixed"]


class SectionTemplate(BaseModel):
    """Definition of one catalogue section."""

    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    parent_key: Optional[str] = None
    content_type: ContentType = "text"
    required_fields: List[str] = Field(default_factory=list)
    table_headers: List[str] = Field(default_factory=list)
    description: str = ""


def _t(key, title, parent_key, content_type, required_fields=(), table_headers=(), description=""):
    return SectionTemplate(
        key=key,
        title=title,
        parent_key=parent_key,
        content_type=content_type,
        required_fields=list(required_fields),
        table_headers=list(table_headers),
        description=description,
    )


_AMOUNT_HEADERS = ("Type", "Owner", "Amount")
_RISK_HEADERS = ("Risk Profile", "Defensive", "Conservative", "Moderate", "Balanced", "Growth", "High Growth")
_ALLOCATION_HEADERS = ("Asset", "Current", "Recommended", "Benchmark", "Variance")

SECTION_TEMPLATES: List[SectionTemplate] = [
    _t("M1", "Client Background", None, "mixed", (
        "client1_full_name", "client1_dob", "client1_contact", "client1_employment", "client1_marital_status",
        "client2_full_name", "client2_dob", "client2_contact", "client2_employment", "client2_marital_status",
        "family_structure", "dependents", "reason_for_advice",
    ), ("Details", "Information"), "Overview of client personal details and reason for seeking advice"),
    _t("M2", "Summary of Advice", None, "bullets", ("recommendations_summary",),
       description="High-level summary of all recommendations"),

    _t("M3", "Your Personal and Financial Details", None, "text",
       description="Detailed personal and financial information"),
    _t("M3_S1", "Personal Details", "M3", "table", (
        "client1_age", "client1_dob", "client1_marital_status", "client1_occupation",
        "client1_employment_status", "client1_retirement_age",
        "client2_age", "client2_dob", "client2_marital_status", "client2_occupation",
        "client2_employment_status", "client2_retirement_age",
    ), ("Details", "Client 1", "Client 2"), "Personal details for both clients"),
    _t("M3_S2", "Non-Dependant Children", "M3", "table", ("children_details",),
       ("Name", "Age", "Living at home", "Still at school"), "Details of non-dependant children"),
    _t("M3_S3", "Income Details", "M3", "table", ("client1_gross_income", "client2_gross_income", "total_income"),
       ("Income", "Owner", "Amount"), "Income breakdown for the household"),
    _t("M3_S4", "Expense Details", "M3", "table", ("total_expenses", "living_expenses"),
       ("Expense", "Owner", "Amount"), "Expense breakdown for the household"),
    _t("M3_S5", "Lifestyle Asset Details", "M3", "table", ("home_value", "total_lifestyle_assets"),
       _AMOUNT_HEADERS, "Non-investment assets owned by the clients"),
    _t("M3_S6", "Investment Assets Excluding Superannuation", "M3", "table", ("total_non_super_investments",),
       _AMOUNT_HEADERS, "Investment assets outside of superannuation"),
    _t("M3_S7", "Financial Assets", "M3", "text", description="Overview of financial assets"),
    _t("M3_S7_SS1", "Investment and Superannuation Assets", "M3_S7", "table",
       ("client1_super_balance", "client2_super_balance", "total_super_balance"),
       ("Fund Name", "Investment Option", "Insurance", "Market Value"), "Superannuation fund details"),
    _t("M3_S8", "Liability Details", "M3", "table", ("total_liabilities",),
       _AMOUNT_HEADERS, "All debts and liabilities"),
    _t("M3_S9", "Personal Insurance Details", "M3", "table", ("current_insurance_coverage",),
       _AMOUNT_HEADERS, "Existing personal insurance policies"),
    _t("M3_S10", "Estate Planning Details", "M3", "table", ("client1_will_status", "client2_will_status"),
       ("Details", "Client 1", "Client 2"), "Estate planning arrangements"),

    _t("M4", "What This Advice Covers", None, "text", description="Scope of advice being provided"),
    _t("M4_S1", "Advice Addressed", "M4", "table", ("goals_addressed",),
       ("Type of Advice", "Reason why this advice is important"), "Goals and objectives being addressed"),
    _t("M4_S2", "Advice Not Addressed", "M4", "text", ("excluded_areas",),
       description="Areas not covered by this advice"),
    _t("M4_S3", "Tax Issues", "M4", "text", ("tax_considerations",),
       description="Tax implications and considerations"),
    _t("M4_S4", "Investment Risk Tolerance", "M4", "text", description="Risk tolerance assessment results"),
    _t("M4_S4_SS1", "Results for Client 1", "M4_S4", "table", ("client1_risk_score", "client1_risk_profile"),
       _RISK_HEADERS, "Client 1 risk profile assessment"),
    _t("M4_S4_SS2", "Risk Profile Description - Client 1", "M4_S4", "text", ("client1_profile_description",),
       description="Detailed description of Client 1's risk profile"),
    _t("M4_S4_SS3", "Results for Client 2", "M4_S4", "table", ("client2_risk_score", "client2_risk_profile"),
       _RISK_HEADERS, "Client 2 risk profile assessment"),
    _t("M4_S4_SS4", "Risk Profile Description - Client 2", "M4_S4", "text", ("client2_profile_description",),
       description="Detailed description of Client 2's risk profile"),

    _t("M5", "Our Recommendations", None, "mixed", ("recommendations",),
       description="Detailed recommendations with rationale"),
    _t("M6", "Retirement Income Estimates", None, "mixed", ("retirement_projections",),
       ("Year", "Year 1", "Year 2", "Year 3", "Year 4", "Year 5"), "Projected retirement income scenarios"),

    _t("M7", "Product Recommendations", None, "text", description="Specific product recommendations"),
    _t("M7_S1", "Recommended Products", "M7", "table", ("product_recommendations",),
       ("Position", "Current Value", "Adjustment", "Proposed Value"), "List of recommended products"),
    _t("M7_S2", "Asset Allocation", "M7", "text", description="Asset allocation recommendations"),
    _t("M7_S2_SS1", "Your Current & Recommended Asset Allocation - Client 1", "M7_S2", "table",
       ("client1_current_allocation", "client1_recommended_allocation"),
       _ALLOCATION_HEADERS, "Client 1 asset allocation comparison"),
    _t("M7_S2_SS2", "Your Current & Recommended Asset Allocation - Client 2", "M7_S2", "table",
       ("client2_current_allocation", "client2_recommended_allocation"),
       _ALLOCATION_HEADERS, "Client 2 asset allocation comparison"),
    _t("M7_S3", "Product Replacement", "M7", "text", description="Product replacement recommendations"),
    _t("M7_S3_SS1", "Current Investment Funds", "M7_S3", "table", ("current_funds",),
       ("Product", "Balance"), "Current investment fund holdings"),
    _t("M7_S3_SS2", "Proposed Investment Funds", "M7_S3", "table", ("proposed_funds",),
       ("Product", "Balance"), "Recommended investment funds"),
    _t("M7_S3_SS3", "Upfront Transactional Charges", "M7_S3", "table", ("upfront_charges",),
       ("Product", "Recommended Buys", "Recommended Sells", "Buy/Sell cost (%)", "Buy/Sell cost ($)", "Total"),
       "One-time transaction costs"),
    _t("M7_S3_SS4", "Ongoing Product Fees and Charges", "M7_S3", "table", ("ongoing_fees",),
       ("Management cost (%)", "Management cost ($)", "Admin Fees", "Other fees", "Less rebates",
        "Total ongoing fees"), "Recurring product fees"),
    _t("M7_S4", "Insurance Recommendations", "M7", "text", description="Insurance recommendations"),
    _t("M7_S4_SS1", "Summary of Insurance Requirements", "M7_S4", "table", ("insurance_requirements",),
       ("Client", "Life", "TPD", "IP (pa)"), "Insurance needs analysis summary"),
    _t("M7_S4_SS2", "Personal Insurance Product Recommendations", "M7_S4", "table",
       ("insurance_product_recommendations",),
       ("Insurance Policy", "Policy Owner", "Life Insured", "Cover", "Benefit", "Policy cost (p.a.)"),
       "Specific insurance product recommendations"),

    _t("M8", "Costs and Other Important Information", None, "text", description="Fee and cost disclosures"),
    _t("M8_S1", "Advice Fees", "M8", "text", ("upfront_advice_fee", "ongoing_advice_fee"),
       description="Adviser fees charged"),
    _t("M8_S2", "Insurance Premiums", "M8", "table", ("insurance_premium_breakdown",),
       ("Upfront", "Payable by you %", "Payable by you $", "Amount Firm receives %", "Amount Firm receives $"),
       "Insurance premium details and commissions"),
    _t("M8_S3", "Other Platform/Product Fees", "M8", "text", ("platform_fees", "product_fees"),
       description="Platform and product fees"),
    _t("M8_S4", "Associated Entities", "M8", "text", ("conflicts_disclosure",),
       description="Conflicts of interest and related parties"),
    _t("M8_S5", "Future Reviews", "M8", "text", ("review_schedule",),
       description="Ongoing review arrangements"),

    _t("M9", "Agreement to Proceed", None, "text", description="Client acknowledgment and consent"),
    _t("M9_S1", "Client Declaration", "M9", "mixed", ("client_acknowledgment", "signature_fields"),
       description="Client declaration and signature section"),

    _t("M10", "How to Implement This Advice", None, "text", ("implementation_steps",),
       description="Step-by-step implementation guide"),
]

TEMPLATES_BY_KEY: Dict[str, SectionTemplate] = {template.key: template for template in SECTION_TEMPLATES}

# Main sections an SOA must contain (ASIC RG 175)
REQUIRED_MAIN_SECTIONS: List[str] = ["M1", "M2", "M5", "M8", "M9", "M10"]


def find_template(section_key: str) -> Optional[SectionTemplate]:
    return TEMPLATES_BY_KEY.get(section_key)


def get_template(section_key: str) -> SectionTemplate:
    """Get a catalogue template by key.

    Raises:
        TemplateNotFoundError: If the key is not in the catalogue
    """
    template = TEMPLATES_BY_KEY.get(section_key)
    if template is None:
        raise TemplateNotFoundError(f"No section template for key {section_key}")
    return template


def get_template_ancestors(section_key: str) -> List[str]:
    """Get the template ancestor chain of a key, nearest first."""
    ancestors: List[str] = []
    template = TEMPLATES_BY_KEY.get(section_key)
    while template is not None and template.parent_key is not None:
        ancestors.append(template.parent_key)
        template = TEMPLATES_BY_KEY.get(template.parent_key)
    return ancestors


def get_available_templates(existing_keys: Iterable[str]) -> List[SectionTemplate]:
    """Get the templates not yet present in a project, in section order."""
    existing = set(existing_keys)
    keys = sort_section_keys(key for key in TEMPLATES_BY_KEY if key not in existing)
    return [TEMPLATES_BY_KEY[key] for key in keys]


def group_template_keys_into_batches(
    batch_size: int = 10,
    section_keys: Optional[Iterable[str]] = None,
) -> List[List[str]]:
    """Split catalogue keys (or the given subset) into generation batches.

    Args:
        batch_size: Maximum number of keys per batch
        section_keys: Optional subset of keys; defaults to the whole catalogue

    Returns:
        List of key batches in catalogue order
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    if section_keys is None:
        keys = [template.key for template in SECTION_TEMPLATES]
    else:
        wanted = set(section_keys)
        keys = [template.key for template in SECTION_TEMPLATES if template.key in wanted]

    return [keys[i:i + batch_size] for i in range(0, len(keys), batch_size)]
