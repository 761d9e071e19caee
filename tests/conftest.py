import datetime as dt

import pytest

from legen.common.models import SignatureRecord, UserProfile
from legen.documents import render
from legen.signature import SignaturePad

SIGNED_AT = dt.datetime(2024, 3, 5, 10, 30, 0)
STROKES = [[(20, 150), (80, 60), (140, 140), (220, 40)], [(260, 120), (420, 110)]]


@pytest.fixture
def student() -> UserProfile:
    return UserProfile(
        id="student-1",
        name="Asha Kumar",
        email="asha@mepcoeng.ac.in",
        roles=["student"],
        department="CSE",
        dept_and_section="III CSE A",
        roll_number="21CS001",
    )


@pytest.fixture
def hod() -> UserProfile:
    return UserProfile(
        id="hod-1",
        name="Dr. Meena",
        email="meena@mepcoeng.ac.in",
        roles=["hod"],
        department="CSE",
    )


@pytest.fixture
def staff() -> UserProfile:
    return UserProfile(
        id="staff-1",
        name="Prof. Ravi",
        email="ravi@mepcoeng.ac.in",
        roles=["staff advisor"],
        department="CSE",
        dept_and_section="III CSE A",
    )


@pytest.fixture
def signature_record() -> SignatureRecord:
    pad = SignaturePad.replay(STROKES)
    return pad.save("Prof. Ravi", "staff-1", now=SIGNED_AT)


@pytest.fixture
def sample_pdf() -> bytes:
    return render("Circular\n\nPlease find the schedule below.")


@pytest.fixture
def truncated_png(signature_record) -> bytes:
    # Header and IHDR survive, pixel data is cut off
    return signature_record.image_png[:60]
