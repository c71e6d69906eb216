"""Static questionnaire configuration.

Changing the count, kind or options of questions is a data-only edit here;
the wizard takes the tuple at construction and never special-cases ids.
"""

from __future__ import annotations

from dataclasses import dataclass

from flyer_questionnaire.protocol.constants import (
    KEY_MAP_A,
    KEY_MAP_B,
    KIND_DATE,
    KIND_LONGTEXT,
    KIND_MULTI,
    KIND_SINGLE,
)

QUESTION_KINDS = (KIND_SINGLE, KIND_MULTI, KIND_LONGTEXT, KIND_DATE)


@dataclass(frozen=True)
class QuestionDefinition:
    id: str
    kind: str
    label: str
    options: tuple[str, ...] = ()
    required: bool = True
    placeholder: str = ""

    def __post_init__(self) -> None:
        if self.kind not in QUESTION_KINDS:
            raise ValueError(f"unknown question kind: {self.kind!r}")
        if self.kind in (KIND_SINGLE, KIND_MULTI) and not self.options:
            raise ValueError(f"choice question {self.id!r} needs options")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "kind": self.kind,
            "label": self.label,
            "options": list(self.options),
            "required": self.required,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class MapTask:
    key: str
    title: str
    helper: str
    image_url: str


YES_NO = ("Yes", "No")
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

QUESTIONS: tuple[QuestionDefinition, ...] = (
    QuestionDefinition("dob", KIND_DATE, "Date of Birth"),
    QuestionDefinition(
        "availability_days",
        KIND_MULTI,
        "What days are you available to work?",
        options=WEEKDAYS,
    ),
    QuestionDefinition(
        "walk10mi",
        KIND_SINGLE,
        "Are you comfortable walking 10 miles per shift?",
        options=YES_NO,
    ),
    QuestionDefinition(
        "weather_ok",
        KIND_SINGLE,
        "Are you comfortable delivering in rainy/cold conditions?",
        options=YES_NO,
    ),
    QuestionDefinition(
        "smartphone",
        KIND_SINGLE,
        "Do you have a smartphone with mobile data for navigation during work?",
        options=YES_NO,
    ),
    QuestionDefinition(
        "experience",
        KIND_LONGTEXT,
        "Have you any experience in a similar role? (Leaflet delivery, courier etc)",
        required=False,
        placeholder="Briefly describe your experience",
    ),
    QuestionDefinition(
        "nojunk",
        KIND_LONGTEXT,
        "House with a 'No Junk Mail' sticker: what do you do?",
        placeholder="Describe your approach",
    ),
    QuestionDefinition(
        "angry_resident",
        KIND_LONGTEXT,
        "A resident is angry about receiving a leaflet and tries to hand it back to you; "
        "what do you do?",
        placeholder="Describe how you would handle this",
    ),
)

MAP_TASKS: tuple[MapTask, MapTask] = (
    MapTask(
        KEY_MAP_A,
        "Map Task A",
        "Draw your delivery route starting at the X",
        "/garden-city-map-with-x.png",
    ),
    MapTask(
        KEY_MAP_B,
        "Map Task B",
        "Draw your delivery route and mark your own start point",
        "/creggan-no-x.png",
    ),
)


def question_by_id(questions: tuple[QuestionDefinition, ...], question_id: str) -> QuestionDefinition | None:
    for q in questions:
        if q.id == question_id:
            return q
    return None
