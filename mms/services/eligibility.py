# mms/services/eligibility.py
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from mms.schemas.sections import IndividualSections, OrganizationSections

PASSING_GRADES = {"A*", "A", "B", "C"}
MIN_O_LEVEL_PASSES = 5
MIN_A_LEVEL_PASSES = 2
MIN_AGE = 18
MATURE_ENTRY_AGE = 27

INDIVIDUAL_FEE = 50.0
MATURE_ENTRY_FEE = 75.0
ORGANIZATION_FEE = 150.0
FEE_CURRENCY = "USD"


@dataclass
class EligibilityResult:
    ok: bool
    mature: bool = False
    reasons: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    fee_amount: float = 0.0


def age_on(dob: date, today: date) -> int:
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return years


def _passes(subjects) -> List[str]:
    return [s.subject.strip().lower() for s in subjects if s.grade.strip().upper() in PASSING_GRADES]


def check_individual_eligibility(sections: IndividualSections, today: Optional[date] = None) -> EligibilityResult:
    """Education and age rules for individual membership.

    Every applicant needs five O-Level passes including English and
    Mathematics. Applicants under 27 also need two A-Level passes or an
    equivalent qualification; from 27 they qualify as mature entrants.
    """
    today = today or date.today()
    result = EligibilityResult(ok=False)

    personal = sections.personal
    if personal is None or personal.date_of_birth is None:
        result.reasons.append("Date of birth is required")
        return result

    age = age_on(personal.date_of_birth, today)
    if age < MIN_AGE:
        result.reasons.append(f"Applicant must be at least {MIN_AGE} years old")

    o_level_passes = _passes(sections.o_level.subjects) if sections.o_level else []
    if len(o_level_passes) < MIN_O_LEVEL_PASSES:
        result.reasons.append(f"Must have at least {MIN_O_LEVEL_PASSES} O-Level passes")
    if not any("english" in s for s in o_level_passes):
        result.reasons.append("Must have O-Level English pass")
    if not any("math" in s for s in o_level_passes):
        result.reasons.append("Must have O-Level Mathematics pass")

    result.mature = age >= MATURE_ENTRY_AGE
    a_level_passes = _passes(sections.a_level.subjects) if sections.a_level else []
    has_a_level = len(a_level_passes) >= MIN_A_LEVEL_PASSES
    has_equivalent = bool(sections.equivalent_qualification and not sections.equivalent_qualification.missing_fields())

    if not result.mature and not has_a_level and not has_equivalent:
        result.reasons.append(
            f"Applicants under {MATURE_ENTRY_AGE} must have either {MIN_A_LEVEL_PASSES}+ A-Level passes "
            "or an equivalent qualification"
        )
    if result.mature and has_a_level:
        result.warnings.append("A-Level qualifications will strengthen your application")

    result.ok = not result.reasons
    result.fee_amount = MATURE_ENTRY_FEE if result.mature else INDIVIDUAL_FEE
    return result


def check_organization_eligibility(sections: OrganizationSections) -> EligibilityResult:
    result = EligibilityResult(ok=False, fee_amount=ORGANIZATION_FEE)

    company = sections.company
    if company is None or not company.name or len(company.name.strip()) < 2:
        result.reasons.append("Valid organization legal name is required")
    if company is None or not company.email:
        result.reasons.append("An organization email address is required")

    trust = sections.trust_account
    if trust is None or not trust.bank_name or len(trust.bank_name.strip()) < 2:
        result.reasons.append("Trust account bank name is required")

    if not sections.directors:
        result.reasons.append("At least one director must be listed")

    result.ok = not result.reasons
    return result


def required_documents(application_type: str, sections) -> List[str]:
    """Doc types an application must carry; repeated entries mean several copies."""
    if application_type == "individual":
        required = ["o_level_cert", "id_or_passport", "birth_certificate"]
        if sections.a_level and len(_passes(sections.a_level.subjects)) >= MIN_A_LEVEL_PASSES:
            required.append("a_level_cert")
        elif sections.equivalent_qualification:
            required.append("equivalent_cert")
        return required

    required = [
        "bank_trust_letter",
        "annual_return_1",
        "annual_return_2",
        "annual_return_3",
        "cr6",
        "cr11",
        "tax_clearance",
    ]
    # One police clearance per director
    required.extend(["police_clearance_director"] * max(len(sections.directors or []), 1))
    return required


def outstanding_documents(application_type: str, sections, uploaded_doc_types: Iterable[str]) -> List[str]:
    uploaded = Counter(uploaded_doc_types)
    missing = []
    for doc_type, needed in Counter(required_documents(application_type, sections)).items():
        if uploaded[doc_type] < needed:
            missing.append(doc_type)

    if application_type == "organization":
        if not uploaded["certificate_incorporation"] and not uploaded["partnership_agreement"]:
            missing.append("certificate_incorporation")
    return missing


def check_eligibility(application_type: str, sections, today: Optional[date] = None) -> EligibilityResult:
    if application_type == "individual":
        return check_individual_eligibility(sections, today=today)
    return check_organization_eligibility(sections)
