"""
Prose templates, one per letter type.

Each template returns the subject line and the body paragraphs that follow
the recipient block. Closing and signature lines are added by the composer.
"""

from __future__ import annotations

from typing import Any, Callable

from legen.common.models import (
    ApologyLetter,
    IndustrialVisitLetter,
    InternshipLetter,
    LaptopLetter,
    LeaveLetter,
    LetterType,
    SymposiumLetter,
)

UNSUPPORTED_BODY = "Letter type not supported."

Template = Callable[[Any], "tuple[str, list[str]]"]


def closing_for(letter_type: str) -> str:
    """Leave letters close sincerely, everything else obediently."""
    if letter_type == LetterType.LEAVE:
        return "Yours sincerely"
    return "Yours obediently"


def leave(letter: LeaveLetter) -> tuple[str, list[str]]:
    return "Requisition for leave -reg", [
        f"I am writing to formally request a leave of absence from "
        f"{letter.start_date} to {letter.end_date}. Due to {letter.reason}, "
        f"I will be unable to attend class during this period. I request you "
        f"to grant me leave for {letter.number_of_days} days.",
        "Thank You",
    ]


def internship(letter: InternshipLetter) -> tuple[str, list[str]]:
    return "Requisition for Permission for Attending Internship - Reg", [
        f"I would like to inform you that I have received an opportunity to "
        f"intern at {letter.company_name}, {letter.company_location} from "
        f"{letter.start_date} to {letter.end_date}. Therefore, I kindly request "
        f"you to grant me permission to attend this internship.",
        "I assure you that I will adhere to all guidelines and will not misuse "
        "this privilege. I believe that this internship will provide me with "
        "valuable practical experience and enhance my skills in my field of "
        "study.",
        "Thank you for your consideration.",
    ]


def laptop(letter: LaptopLetter) -> tuple[str, list[str]]:
    return "Requisition for Permission for Laptop Usage - Reg", [
        f"I would like to inform you that I need to use a laptop during the "
        f"study hours from {letter.start_date} to {letter.end_date} for the "
        f"preparation of my exams. Therefore, I kindly request you to grant me "
        f"permission to use a laptop during the specified study hours.",
        "I assure you that I will not misuse this privilege.",
        "Thank you for your consideration.",
    ]


def symposium(letter: SymposiumLetter) -> tuple[str, list[str]]:
    return "Requisition for Permission for Attending Symposium - Reg", [
        f"I would like to inform you that I am scheduled to participate in a "
        f"symposium at {letter.college_name}, {letter.college_location} on "
        f"{letter.date}. Therefore, I kindly request you to grant me permission "
        f"to attend this symposium.",
        "I assure you that I will adhere to all guidelines and will not misuse "
        "this privilege. I believe that attending this event will greatly "
        "enhance my knowledge and contribute to my academic growth.",
        "Thank you for your consideration.",
    ]


def apology(letter: ApologyLetter) -> tuple[str, list[str]]:
    return f"Apology for {letter.reason} - Reg", [
        f"I sincerely apologize for {letter.reason}. I understand that my "
        f"actions may have caused inconvenience and disappointment, and I take "
        f"full responsibility for my behavior.",
        "I assure you that I have reflected on this situation and recognize "
        "the importance of adhering to the guidelines and expectations set "
        "forth by the college. I am committed to learning from this experience "
        "and will take the necessary steps to ensure that I do not repeat this "
        "mistake in the future.",
        "I value the trust and support of the faculty and my peers, and I am "
        "determined to regain your confidence. Thank you for your "
        "understanding and patience regarding this matter.",
    ]


def industrial_visit(letter: IndustrialVisitLetter) -> tuple[str, list[str]]:
    return "Requisition for Permission for Industrial Visit - Reg", [
        f"I would like to inform you that I am scheduled to participate in an "
        f"industrial visit to {letter.location} from {letter.start_date} to "
        f"{letter.end_date}. Therefore, I kindly request you to grant me "
        f"permission to attend this visit.",
        "I assure you that I will adhere to all guidelines and will not misuse "
        "this privilege.",
        "Thank you for your consideration.",
    ]


TEMPLATES: dict[LetterType, Template] = {
    LetterType.LEAVE: leave,
    LetterType.INTERNSHIP: internship,
    LetterType.LAPTOP: laptop,
    LetterType.SYMPOSIUM: symposium,
    LetterType.APOLOGY: apology,
    LetterType.INDUSTRIAL_VISIT: industrial_visit,
}
