import pytest

from legen.common.exceptions import IdentityVerificationError
from legen.common.models import RegistrationForm
from legen.server.identity import IdentityVerifier, TesseractTextExtractor

CARD_TEXT = "MEPCO SCHLENK ENGINEERING COLLEGE\nwww.mepcoeng.ac.in\nID 21CS001"


class FakeExtractor:
    def __init__(self, text: str = CARD_TEXT):
        self.text = text
        self.calls = 0

    def extract_text(self, image_bytes: bytes) -> str:
        self.calls += 1
        return self.text


def _form(**changes) -> RegistrationForm:
    data = {
        "name": "Asha Kumar",
        "email": "asha@gmail.com",
        "college_mail_id": "asha@mepcoeng.ac.in",
        "roles": ["student"],
        "department": "CSE",
        "dept_and_section": "III CSE A",
        "roll_number": "21CS001",
    }
    data.update(changes)
    return RegistrationForm(**data)


def test_valid_registration_builds_profile() -> None:
    verifier = IdentityVerifier(FakeExtractor())
    profile = verifier.verify_registration(_form(), b"image")

    assert profile.email == "asha@mepcoeng.ac.in"
    assert profile.personal_email == "asha@gmail.com"
    assert profile.roles == ["student"]
    assert profile.roll_number == "21CS001"
    assert profile.hostel_name is None
    assert profile.id


def test_card_without_marker_is_rejected() -> None:
    verifier = IdentityVerifier(FakeExtractor("Some other college"))
    with pytest.raises(
        IdentityVerificationError,
        match="Invalid Mepco Schlenk Engineering College ID card.",
    ):
        verifier.verify_registration(_form(), b"image")


def test_missing_card_is_rejected_before_ocr() -> None:
    extractor = FakeExtractor()
    with pytest.raises(IdentityVerificationError, match="Upload your ID card."):
        IdentityVerifier(extractor).verify_registration(_form(), b"")
    assert extractor.calls == 0


@pytest.mark.parametrize(
    ("changes", "message"),
    [
        ({"name": " "}, "Name is required."),
        ({"email": "not-an-email"}, "Invalid Personal Email ID format."),
        ({"college_mail_id": "asha@gmail.com"}, "Invalid College Mail ID format."),
        ({"roles": []}, "Select at least one Profession Role."),
        ({"roll_number": None}, "Roll Number required for Students."),
        ({"department": ""}, "Department required"),
        (
            {"roles": ["staff advisor"], "dept_and_section": None},
            "Department, Section, and Year required for Staff Advisors.",
        ),
        ({"is_hosteller": True}, "Hostel Name required"),
        ({"roles": ["sub warden"]}, "Hostel Name required"),
    ],
)
def test_form_rules(changes, message) -> None:
    extractor = FakeExtractor()
    with pytest.raises(IdentityVerificationError, match=message):
        IdentityVerifier(extractor).verify_registration(_form(**changes), b"image")
    assert extractor.calls == 0


def test_hosteller_keeps_hostel_name() -> None:
    form = _form(is_hosteller=True, hostel_name="Boys Hostel 2")
    profile = IdentityVerifier(FakeExtractor()).verify_registration(form, b"image")
    assert profile.hostel_name == "Boys Hostel 2"


def test_tesseract_extractor_rejects_non_images() -> None:
    with pytest.raises(IdentityVerificationError, match="valid image file"):
        TesseractTextExtractor().extract_text(b"definitely not an image")
