from __future__ import annotations

import re

from flyer_questionnaire.protocol.constants import KIND_MULTI
from flyer_questionnaire.protocol.messages import AnswerValue, ContactInfo

from .questions import QuestionDefinition

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$")
# international (+ and 7-15 digits), domestic (leading 0, 10-12 digits total) or bare digits
PHONE_RE = re.compile(r"^(\+\d{7,15}|0\d{9,11}|\d{7,15})$")


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.fullmatch(email or ""))


def validate_phone(phone: str) -> bool:
    return bool(PHONE_RE.fullmatch((phone or "").strip()))


def validate_name(name: str) -> bool:
    return len((name or "").strip()) > 1


def contact_errors(contact: ContactInfo) -> list[str]:
    """Inline messages for each contact field that blocks the wizard."""
    errors: list[str] = []
    if not validate_name(contact.name):
        errors.append("Please enter your full name.")
    if not validate_phone(contact.phone):
        errors.append("Please enter a valid phone number.")
    if not validate_email(contact.email):
        errors.append("Please enter a valid email address.")
    return errors


def is_answered(question: QuestionDefinition, value: AnswerValue | None) -> bool:
    if question.kind == KIND_MULTI:
        return isinstance(value, list) and len(value) > 0
    if value is None:
        return False
    if isinstance(value, list):
        return len(value) > 0
    return value != ""


def answer_errors(question: QuestionDefinition, value: AnswerValue | None) -> list[str]:
    if not question.required or is_answered(question, value):
        return []
    if question.kind == KIND_MULTI:
        return ["Please select at least one option."]
    return ["This question is required."]
