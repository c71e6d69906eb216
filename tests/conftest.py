import pytest

from flyer_questionnaire.core.questions import QUESTIONS
from flyer_questionnaire.core.storage import MemoryStore
from flyer_questionnaire.core.wizard import WizardController
from flyer_questionnaire.protocol.constants import KIND_DATE, KIND_LONGTEXT, KIND_MULTI, KIND_SINGLE

JANE = {"name": "Jane Doe", "phone": "07123456789", "email": "jane@example.com"}


def valid_answer(question):
    if question.kind == KIND_DATE:
        return "1990-05-01"
    if question.kind == KIND_MULTI:
        return [question.options[0]]
    if question.kind == KIND_SINGLE:
        return question.options[0]
    assert question.kind == KIND_LONGTEXT
    return "I would ring the bell and explain."


def drive_to_review(wizard: WizardController) -> None:
    wizard.update_contact(**JANE)
    assert wizard.advance()
    for q in wizard.questions:
        wizard.set_answer(q.id, valid_answer(q))
        assert wizard.advance()
    # two sketch steps
    assert wizard.advance()
    assert wizard.advance()
    assert wizard.step == wizard.review_step


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def wizard(store):
    return WizardController(store, QUESTIONS)


@pytest.fixture
def review_wizard(wizard):
    drive_to_review(wizard)
    return wizard
