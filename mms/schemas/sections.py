# mms/schemas/sections.py
"""Typed application sections.

Sections are stored as JSON columns on the application rows. Every write and
read goes through these models so that the stored shape cannot drift from
what the code expects. Fields are optional while an application is a draft.
``missing_fields`` reports what still has to be filled in before submission.
"""

from datetime import date
from typing import ClassVar, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field

SECTIONS_SCHEMA_VERSION = 1


class Section(BaseModel):
    REQUIRED: ClassVar[Tuple[str, ...]] = ()

    model_config = ConfigDict(extra="forbid")

    def missing_fields(self) -> List[str]:
        return [name for name in self.REQUIRED if getattr(self, name) in (None, "", [])]


class SubjectGrade(BaseModel):
    subject: str
    grade: str


# ---------------- Individual ----------------

class PersonalSection(Section):
    REQUIRED = ("first_name", "last_name", "date_of_birth", "email", "phone", "national_id", "physical_address")

    title: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    national_id: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    physical_address: Optional[str] = None
    country_of_residence: Optional[str] = None
    current_employer: Optional[str] = None


class OLevelSection(Section):
    REQUIRED = ("subjects",)

    exam_body: Optional[str] = None
    year: Optional[int] = None
    subjects: List[SubjectGrade] = Field(default_factory=list)


class ALevelSection(Section):
    exam_body: Optional[str] = None
    year: Optional[int] = None
    subjects: List[SubjectGrade] = Field(default_factory=list)


class EquivalentQualificationSection(Section):
    REQUIRED = ("qualification", "institution")

    qualification: Optional[str] = None
    institution: Optional[str] = None
    year: Optional[int] = None


class IndividualSections(BaseModel):
    model_config = ConfigDict(extra="forbid")

    personal: Optional[PersonalSection] = None
    o_level: Optional[OLevelSection] = None
    a_level: Optional[ALevelSection] = None
    equivalent_qualification: Optional[EquivalentQualificationSection] = None

    REQUIRED_SECTIONS: ClassVar[Tuple[str, ...]] = ("personal", "o_level")


# ---------------- Organization ----------------

class CompanySection(Section):
    REQUIRED = ("name", "physical_address", "email", "phone")

    name: Optional[str] = None
    registration_number: Optional[str] = None
    business_type: Optional[str] = None
    physical_address: Optional[str] = None
    postal_address: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class ContactPersonSection(Section):
    REQUIRED = ("name", "email")

    name: Optional[str] = None
    position: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class TrustAccountSection(Section):
    REQUIRED = ("bank_name", "account_number")

    bank_name: Optional[str] = None
    branch: Optional[str] = None
    account_name: Optional[str] = None
    account_number: Optional[str] = None


class DirectorEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str
    national_id: Optional[str] = None
    nationality: Optional[str] = None
    ownership_percentage: Optional[float] = None


class OrganizationSections(BaseModel):
    model_config = ConfigDict(extra="forbid")

    company: Optional[CompanySection] = None
    contact_person: Optional[ContactPersonSection] = None
    trust_account: Optional[TrustAccountSection] = None
    directors: Optional[List[DirectorEntry]] = None

    REQUIRED_SECTIONS: ClassVar[Tuple[str, ...]] = ("company", "contact_person", "trust_account", "directors")


SECTION_MODELS = {
    "individual": IndividualSections,
    "organization": OrganizationSections,
}


def section_errors(sections: BaseModel) -> List[str]:
    """List the sections and fields still missing before submission."""
    errors = []
    for name in sections.REQUIRED_SECTIONS:
        value = getattr(sections, name)
        if value in (None, []):
            errors.append(f"{name} section is required")
        elif isinstance(value, Section):
            errors.extend(f"{name}.{field} is required" for field in value.missing_fields())
    return errors
