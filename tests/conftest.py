"""Pytest fixtures shared by the unit and API tests.

Provides:
- a SQLite database file created fresh for each test
- a recording mailer and temporary local object storage
- a TestClient with the database and service container overridden
- staff users and a verified applicant with ready-made bearer headers
"""

import os
import tempfile

# Set environment variables BEFORE any mms imports so Settings picks them up
_TEST_DIR = tempfile.mkdtemp(prefix="mms-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-signing-only"
os.environ["EMAIL_HOST"] = ""
os.environ["EMAIL_SEND_TIMEOUT_SECONDS"] = "2"
os.environ["LOCAL_STORAGE_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["BACKEND_URL"] = "http://testserver"

from datetime import datetime
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mms.config import settings
from mms.database import Base, SessionLocal, engine, get_db
from mms.dependencies import Services, get_services
from mms.models.applicant import Applicant
from mms.models.status import ApplicantStatus
from mms.models.user import User
from mms.services.email_service import Mailer
from mms.services.naming_series import next_application_id
from mms.services.rate_limit import UploadRateLimiter
from mms.services.storage import LocalObjectStorage
from mms.utils.token import create_access_token, hash_password


class RecordingMailer(Mailer):
    """Keeps every message instead of sending it; addresses in ``fail_for`` raise."""

    name = "recording"

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    async def send(self, to_email: str, subject: str, html: str) -> None:
        if to_email in self.fail_for:
            raise ConnectionError(f"SMTP refused {to_email}")
        self.sent.append({"to": to_email, "subject": subject, "html": html})

    def recipients(self):
        return [message["to"] for message in self.sent]


def make_pdf(marker: str = "sample") -> bytes:
    """A small but structurally valid PDF; ``marker`` changes its hash."""
    body = (
        b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
        b"2 0 obj\n<< /Type /Pages /Kids [] /Count 0 >>\nendobj\n"
        + f"% {marker}\n".encode()
        + b"trailer\n<< /Root 1 0 R >>\n"
    )
    return b"%PDF-1.4\n" + body + b"%%EOF"


COMPLETE_INDIVIDUAL_SECTIONS = {
    "personal": {
        "first_name": "Jane",
        "last_name": "Doe",
        "date_of_birth": "1990-05-14",
        "email": "jane.doe@example.com",
        "phone": "+263771234567",
        "national_id": "63-123456A78",
        "physical_address": "12 Samora Machel Avenue, Harare",
    },
    "o_level": {
        "exam_body": "ZIMSEC",
        "year": 2006,
        "subjects": [
            {"subject": "English Language", "grade": "A"},
            {"subject": "Mathematics", "grade": "B"},
            {"subject": "Physics", "grade": "C"},
            {"subject": "Chemistry", "grade": "B"},
            {"subject": "Geography", "grade": "A"},
        ],
    },
    "a_level": {
        "exam_body": "ZIMSEC",
        "year": 2008,
        "subjects": [
            {"subject": "Mathematics", "grade": "B"},
            {"subject": "Accounting", "grade": "A"},
        ],
    },
}


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh schema for each test, dropped afterwards."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(
        root=str(tmp_path / "uploads"),
        public_base_url="http://testserver",
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


@pytest.fixture
def services(mailer, storage) -> Services:
    return Services(
        settings=settings,
        mailer=mailer,
        storage=storage,
        upload_limiter=UploadRateLimiter(max_requests=1000, window_seconds=900),
    )


@pytest.fixture
def client(db_session: Session, services: Services):
    """TestClient bound to the per-test database and service container."""
    from mms.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_services] = lambda: services

    yield TestClient(app)

    app.dependency_overrides.clear()


def _staff(db_session: Session, email: str, role: str, full_name: str) -> User:
    user = User(
        full_name=full_name,
        email=email,
        hashed_password=hash_password("StaffPass123"),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return _staff(db_session, "admin@council.example.com", "admin", "Ada Admin")


@pytest.fixture
def staff_user(db_session: Session) -> User:
    return _staff(db_session, "clerk@council.example.com", "staff", "Sam Clerk")


def staff_headers(user: User) -> dict:
    token = create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return staff_headers(admin_user)


@pytest.fixture
def verified_applicant(db_session: Session) -> Applicant:
    applicant = Applicant(
        applicant_id=next_application_id(db_session, "individual"),
        first_name="Jane",
        surname="Doe",
        email="jane.doe@example.com",
        status=ApplicantStatus.EMAIL_VERIFIED.value,
        email_verified=True,
        email_verified_at=datetime.utcnow(),
    )
    db_session.add(applicant)
    db_session.commit()
    db_session.refresh(applicant)
    return applicant


def applicant_headers(applicant: Applicant, kind: str = "individual") -> dict:
    token = create_access_token({"sub": applicant.applicant_id, "role": "applicant", "kind": kind})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def applicant_auth(verified_applicant: Applicant) -> dict:
    return applicant_headers(verified_applicant)
