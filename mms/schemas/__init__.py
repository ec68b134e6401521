from .applicant import ApplicantRegister, OrganizationApplicantRegister, ApplicantLogin, VerifyEmailRequest
from .application import ApplicationResponse, FeePaymentRequest, TransitionRequest, RejectRequest
from .document import UploadUrlRequest, FinalizeDocumentRequest, DocumentVerifyRequest
from .sections import IndividualSections, OrganizationSections
from .admin import StaffLogin, StaffUserCreate, MemberUpdate, OrganizationUpdate

__all__ = [
    "ApplicantRegister",
    "OrganizationApplicantRegister",
    "ApplicantLogin",
    "VerifyEmailRequest",
    "ApplicationResponse",
    "FeePaymentRequest",
    "TransitionRequest",
    "RejectRequest",
    "UploadUrlRequest",
    "FinalizeDocumentRequest",
    "DocumentVerifyRequest",
    "IndividualSections",
    "OrganizationSections",
    "StaffLogin",
    "StaffUserCreate",
    "MemberUpdate",
    "OrganizationUpdate",
]
