# mms/models/__init__.py

from .user import User
from .applicant import Applicant, OrganizationApplicant
from .application import IndividualApplication, OrganizationApplication, StatusHistory
from .document import UploadedDocument
from .member import Member, Organization
from .naming_series import NamingSeriesCounter

__all__ = [
    "User",
    "Applicant",
    "OrganizationApplicant",
    "IndividualApplication",
    "OrganizationApplication",
    "StatusHistory",
    "UploadedDocument",
    "Member",
    "Organization",
    "NamingSeriesCounter",
]
