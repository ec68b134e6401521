"""Registration through staff review over the HTTP API."""

import re
from datetime import datetime

import pytest

from mms.models.applicant import Applicant, OrganizationApplicant
from mms.models.member import Organization
from mms.models.status import ApplicantStatus
from mms.services.naming_series import next_application_id
from tests.conftest import COMPLETE_INDIVIDUAL_SECTIONS, applicant_headers, make_pdf

COMPLETE_ORGANIZATION_SECTIONS = {
    "company": {
        "name": "Acme Estate Agents (Pvt) Ltd",
        "registration_number": "1234/2015",
        "business_type": "private_company",
        "physical_address": "45 Nelson Mandela Avenue, Harare",
        "email": "info@acme-estates.example.com",
        "phone": "+263242700100",
    },
    "contact_person": {"name": "Tendai Moyo", "position": "Principal Agent", "email": "tendai@acme-estates.example.com"},
    "trust_account": {"bank_name": "CBZ Bank", "branch": "Kopje", "account_number": "01234567890"},
    "directors": [{"full_name": "Tendai Moyo", "national_id": "63-765432B21", "ownership_percentage": 60}],
}


@pytest.fixture
def organization_applicant(db_session) -> OrganizationApplicant:
    applicant = OrganizationApplicant(
        applicant_id=next_application_id(db_session, "organization"),
        company_name="Acme Estate Agents (Pvt) Ltd",
        contact_person="Tendai Moyo",
        email="info@acme-estates.example.com",
        status=ApplicantStatus.EMAIL_VERIFIED.value,
        email_verified=True,
        email_verified_at=datetime.utcnow(),
    )
    db_session.add(applicant)
    db_session.commit()
    db_session.refresh(applicant)
    return applicant


class TestIndividualJourney:
    """Jane Doe registers, applies and reaches document review"""

    def test_register_to_document_review(self, client, db_session, mailer, admin_user):
        registered = client.post("/applicants/register", json={
            "first_name": "Jane", "surname": "Doe", "email": "jane.doe@example.com",
        })
        assert registered.status_code == 201
        applicant_id = registered.json()["applicant_id"]
        assert re.match(r"^MBR-APP-\d{4}-\d{4}$", applicant_id)

        token = db_session.query(Applicant).filter(Applicant.applicant_id == applicant_id).one().verification_token
        assert client.post("/applicants/verify-email", json={"token": token}).json()["status"] == "verified"

        login = client.post("/applicants/login", json={"applicant_id": applicant_id, "email": "jane.doe@example.com"})
        assert login.status_code == 200
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

        draft = client.put("/applications/individual/draft", json=COMPLETE_INDIVIDUAL_SECTIONS, headers=headers)
        assert draft.status_code == 200
        assert draft.json()["application_id"] == applicant_id
        assert draft.json()["status"] == "draft"

        issued = client.post(
            f"/applications/{applicant_id}/documents/upload-url",
            json={"doc_type": "o_level_cert", "file_name": "o-level.pdf", "mime_type": "application/pdf"},
            headers=headers,
        ).json()
        client.put(issued["upload_url"], content=make_pdf("jane-o-level"))
        finalized = client.post(
            f"/applications/{applicant_id}/documents/finalize",
            json={"file_key": issued["file_key"], "file_name": "o-level.pdf",
                  "mime_type": "application/pdf", "doc_type": "o_level_cert"},
            headers=headers,
        )
        assert finalized.status_code == 201

        submitted = client.post("/applications/submit", headers=headers)
        assert submitted.status_code == 200, submitted.text
        assert submitted.json()["status"] == "submitted"
        assert submitted.json()["fee_amount"] == 75.0
        assert "o_level_cert" not in submitted.json()["outstanding_documents"]

        mailer.sent.clear()
        staff_login = client.post("/admin/login", json={"email": admin_user.email, "password": "StaffPass123"})
        assert staff_login.status_code == 200
        staff = {"Authorization": f"Bearer {staff_login.json()['access_token']}"}

        moved = client.post(f"/admin/applications/{applicant_id}/document-review", headers=staff)

        assert moved.status_code == 200, moved.text
        assert moved.json()["status"] == "document_review"
        assert moved.json()["emails_sent"] == 2
        assert moved.json()["email_error"] is None
        assert sorted(mailer.recipients()) == sorted(["jane.doe@example.com", admin_user.email])

        detail = client.get(f"/applications/{applicant_id}", headers=headers).json()
        assert [h["to_status"] for h in detail["status_history"]] == ["draft", "submitted", "document_review"]
        assert [d["doc_type"] for d in detail["documents"]] == ["o_level_cert"]
        me = client.get("/applicants/me/status", headers=headers).json()
        assert me["status"] == "under_review"


class TestFeeAndApproval:
    """Fee recording, payment review and approval via the admin API"""

    def test_fee_then_approve(self, client, db_session, applicant_auth, admin_headers, verified_applicant):
        client.put("/applications/individual/draft", json=COMPLETE_INDIVIDUAL_SECTIONS, headers=applicant_auth)
        client.post("/applications/submit", headers=applicant_auth)
        application_id = verified_applicant.applicant_id

        wrong = client.post("/applications/fee", json={"amount": 10, "payment_method": "bank_transfer",
                                                       "reference": "FT123"}, headers=applicant_auth)
        assert wrong.status_code == 422
        assert wrong.json()["detail"]["code"] == "FEE_MISMATCH"

        paid = client.post("/applications/fee", json={"amount": 75, "payment_method": "bank_transfer",
                                                      "reference": "FT123"}, headers=applicant_auth)
        assert paid.json()["status"] == "payment_pending"
        assert paid.json()["fee_status"] == "pending"

        confirmed = client.post(f"/admin/applications/{application_id}/payment-review",
                                json={"notes": "Funds cleared"}, headers=admin_headers)
        assert confirmed.json()["status"] == "payment_received"

        approved = client.post(f"/admin/applications/{application_id}/approve", headers=admin_headers)
        assert approved.status_code == 200
        member_number = approved.json()["member_number"]
        assert member_number.startswith("EAC-MBR-")

        member = client.get(f"/admin/members/{member_number}", headers=admin_headers)
        assert member.json()["email"] == "jane.doe@example.com"

        lapsed = client.patch(f"/admin/members/{member_number}", json={"membership_status": "lapsed"},
                              headers=admin_headers)
        assert lapsed.json()["membership_status"] == "lapsed"
        renewed = client.post(f"/admin/members/{member_number}/renew", headers=admin_headers)
        assert renewed.json()["membership_status"] == "active"

        listing = client.get("/admin/applications", params={"status": "approved"}, headers=admin_headers)
        assert [a["application_id"] for a in listing.json()] == [application_id]

    def test_staff_role_cannot_approve(self, client, db_session, staff_user, applicant_auth):
        from tests.conftest import staff_headers

        client.put("/applications/individual/draft", json=COMPLETE_INDIVIDUAL_SECTIONS, headers=applicant_auth)
        client.post("/applications/submit", headers=applicant_auth)
        application = client.get("/applications/draft", headers=applicant_auth).json()

        response = client.post(f"/admin/applications/{application['application_id']}/approve",
                               headers=staff_headers(staff_user))
        assert response.status_code == 403

    def test_incomplete_application_cannot_submit(self, client, applicant_auth):
        client.put("/applications/individual/draft", json={"personal": {"first_name": "Jane"}}, headers=applicant_auth)

        response = client.post("/applications/submit", headers=applicant_auth)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "INCOMPLETE_APPLICATION"
        assert "o_level section is required" in detail["errors"]

    def test_member_update_rejects_null_required_fields(self, client, db_session, applicant_auth, admin_headers,
                                                         verified_applicant):
        client.put("/applications/individual/draft", json=COMPLETE_INDIVIDUAL_SECTIONS, headers=applicant_auth)
        client.post("/applications/submit", headers=applicant_auth)
        member_number = client.post(f"/admin/applications/{verified_applicant.applicant_id}/approve",
                                    headers=admin_headers).json()["member_number"]

        for field in ("email", "membership_status"):
            response = client.patch(f"/admin/members/{member_number}", json={field: None}, headers=admin_headers)
            assert response.status_code == 422, field

        cleared = client.patch(f"/admin/members/{member_number}", json={"phone": None}, headers=admin_headers)
        assert cleared.status_code == 200
        assert cleared.json()["phone"] is None
        assert cleared.json()["email"] == "jane.doe@example.com"


class TestOrganizationJourney:
    """An estate agency applies, pays and is registered as an organization"""

    def test_draft_submit_fee_and_approve(self, client, db_session, mailer, admin_headers, organization_applicant):
        headers = applicant_headers(organization_applicant, "organization")
        application_id = organization_applicant.applicant_id
        assert application_id.startswith("ORG-APP-")

        wrong_kind = client.put("/applications/individual/draft", json=COMPLETE_INDIVIDUAL_SECTIONS, headers=headers)
        assert wrong_kind.status_code == 400

        draft = client.put("/applications/organization/draft", json=COMPLETE_ORGANIZATION_SECTIONS, headers=headers)
        assert draft.status_code == 200, draft.text
        assert draft.json()["application_id"] == application_id

        submitted = client.post("/applications/submit", headers=headers)
        assert submitted.status_code == 200, submitted.text
        assert submitted.json()["fee_amount"] == 150.0
        assert "police_clearance_director" in submitted.json()["outstanding_documents"]
        assert "certificate_incorporation" in submitted.json()["outstanding_documents"]

        paid = client.post("/applications/fee", json={"amount": 150, "payment_method": "bank_transfer",
                                                      "reference": "FT-ORG-1"}, headers=headers)
        assert paid.status_code == 200
        assert paid.json()["status"] == "payment_pending"

        confirmed = client.post(f"/admin/applications/{application_id}/payment-review", headers=admin_headers)
        assert confirmed.json()["status"] == "payment_received"

        mailer.sent.clear()
        approved = client.post(f"/admin/applications/{application_id}/approve", headers=admin_headers)

        assert approved.status_code == 200, approved.text
        registration_number = approved.json()["member_number"]
        assert re.match(r"^EAC-ORG-\d{4}-0001$", registration_number)
        assert "info@acme-estates.example.com" in mailer.recipients()

        organization = db_session.query(Organization).one()
        assert organization.registration_number == registration_number
        assert organization.name == "Acme Estate Agents (Pvt) Ltd"
        assert organization.physical_address == "45 Nelson Mandela Avenue, Harare"
        assert organization.application_id == application_id
        assert organization.membership_status == "active"

        fetched = client.get(f"/admin/organizations/{registration_number}", headers=admin_headers)
        assert fetched.json()["email"] == "info@acme-estates.example.com"

        listing = client.get("/admin/applications", params={"application_type": "organization"}, headers=admin_headers)
        assert [(a["application_id"], a["status"]) for a in listing.json()] == [(application_id, "approved")]

    def test_organization_without_directors_cannot_submit(self, client, organization_applicant):
        headers = applicant_headers(organization_applicant, "organization")
        sections = {**COMPLETE_ORGANIZATION_SECTIONS, "directors": []}
        client.put("/applications/organization/draft", json=sections, headers=headers)

        response = client.post("/applications/submit", headers=headers)

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INCOMPLETE_APPLICATION"
        assert "directors section is required" in response.json()["detail"]["errors"]

    def test_listing_pages_across_both_kinds(self, client, applicant_auth, admin_headers, organization_applicant,
                                             verified_applicant):
        client.put("/applications/individual/draft", json=COMPLETE_INDIVIDUAL_SECTIONS, headers=applicant_auth)
        org_headers = applicant_headers(organization_applicant, "organization")
        client.put("/applications/organization/draft", json=COMPLETE_ORGANIZATION_SECTIONS, headers=org_headers)

        pages = [
            client.get("/admin/applications", params={"skip": skip, "limit": 1}, headers=admin_headers).json()
            for skip in (0, 1, 2)
        ]

        assert [[a["application_id"] for a in page] for page in pages] == [
            [organization_applicant.applicant_id],
            [verified_applicant.applicant_id],
            [],
        ]
