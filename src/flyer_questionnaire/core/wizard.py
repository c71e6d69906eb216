from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from flyer_questionnaire.protocol.constants import (
    KEY_ANSWERS,
    KEY_CONTACT,
    KEY_STEP,
    KEY_SUBMITTED,
    KIND_DATE,
    KIND_MULTI,
    KIND_SINGLE,
    STEP_CONTACT,
    STEP_QUESTION,
    STEP_REVIEW,
    STEP_SKETCH,
)
from flyer_questionnaire.protocol.messages import (
    AnswerValue,
    ContactInfo,
    PointerEvent,
    SketchRecord,
)

from .errors import AlreadySubmittedError, UnknownQuestionError, UnknownSketchError
from .questions import MAP_TASKS, QUESTIONS, MapTask, QuestionDefinition, question_by_id
from .sketch import SketchSurface, Stroke
from .storage import KeyValueStore
from .validation import answer_errors, contact_errors

logger = logging.getLogger(__name__)

_ANSWERS = TypeAdapter(dict[str, AnswerValue])


class WizardController:
    """
    Linear questionnaire: contact -> one step per question -> map A -> map B -> review.

    Every edit is written through to `store` immediately, one JSON entry per
    field, so a controller rebuilt from the same store resumes where the
    applicant left off. Once `submitted` is set, edits raise
    `AlreadySubmittedError`.
    """

    def __init__(
        self,
        store: KeyValueStore,
        questions: tuple[QuestionDefinition, ...] = QUESTIONS,
        map_tasks: tuple[MapTask, MapTask] = MAP_TASKS,
        *,
        static_dir: Path | None = None,
        default_stroke_width: float = 3.0,
    ) -> None:
        self.store = store
        self.questions = tuple(questions)
        self.map_tasks = tuple(map_tasks)
        self.static_dir = static_dir
        self.default_stroke_width = default_stroke_width
        self.total_steps = 1 + len(self.questions) + len(self.map_tasks) + 1

        self.step = 0
        self.contact = ContactInfo()
        self.answers: dict[str, AnswerValue] = {}
        self.sketches: dict[str, SketchSurface] = {}
        self.submitted = False
        self._load()

    # -- persistence -----------------------------------------------------

    def _default_sketch(self, task: MapTask) -> SketchSurface:
        return SketchSurface(
            task.image_url,
            stroke_width=self.default_stroke_width,
            static_dir=self.static_dir,
        )

    def _load_json(self, key: str) -> Any:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("discarding malformed stored value for %r", key)
            return None

    def _load(self) -> None:
        step = self._load_json(KEY_STEP)
        if isinstance(step, int) and not isinstance(step, bool):
            self.step = min(max(step, 0), self.total_steps - 1)
        elif step is not None:
            logger.warning("ignoring stored step %r", step)

        contact = self._load_json(KEY_CONTACT)
        if contact is not None:
            try:
                self.contact = ContactInfo.model_validate(contact)
            except ValidationError:
                logger.warning("ignoring malformed stored contact")

        answers = self._load_json(KEY_ANSWERS)
        if answers is not None:
            try:
                self.answers = _ANSWERS.validate_python(answers)
            except ValidationError:
                logger.warning("ignoring malformed stored answers")

        for task in self.map_tasks:
            surface = self._default_sketch(task)
            data = self._load_json(task.key)
            if data is not None:
                try:
                    surface = SketchSurface.from_record(
                        SketchRecord.model_validate(data), static_dir=self.static_dir
                    )
                except (ValidationError, ValueError):
                    logger.warning("ignoring malformed stored sketch %r", task.key)
            self.sketches[task.key] = surface

        self.submitted = self._load_json(KEY_SUBMITTED) is True

    def _save(self, key: str, value: Any) -> None:
        self.store.set(key, json.dumps(value, separators=(",", ":"), ensure_ascii=False))

    def _save_sketch(self, key: str) -> None:
        self._save(key, self.sketches[key].to_dict())

    def _ensure_editable(self) -> None:
        if self.submitted:
            raise AlreadySubmittedError("application already submitted")

    # -- step layout -----------------------------------------------------

    @property
    def review_step(self) -> int:
        return self.total_steps - 1

    def step_kind(self, step: int | None = None) -> str:
        s = self.step if step is None else step
        if s == 0:
            return STEP_CONTACT
        if s <= len(self.questions):
            return STEP_QUESTION
        if s < self.review_step:
            return STEP_SKETCH
        return STEP_REVIEW

    def question_for_step(self, step: int | None = None) -> Optional[QuestionDefinition]:
        s = self.step if step is None else step
        if self.step_kind(s) != STEP_QUESTION:
            return None
        return self.questions[s - 1]

    def map_task_for_step(self, step: int | None = None) -> Optional[MapTask]:
        s = self.step if step is None else step
        if self.step_kind(s) != STEP_SKETCH:
            return None
        return self.map_tasks[s - 1 - len(self.questions)]

    # -- navigation ------------------------------------------------------

    def validation_errors(self) -> list[str]:
        kind = self.step_kind()
        if kind == STEP_CONTACT:
            return contact_errors(self.contact)
        if kind == STEP_QUESTION:
            q = self.question_for_step()
            assert q is not None
            return answer_errors(q, self.answers.get(q.id))
        return []

    def can_advance(self) -> bool:
        return not self.validation_errors()

    def _leave_step(self) -> None:
        task = self.map_task_for_step()
        if task is not None:
            self.sketches[task.key].export_raster()
            self._save_sketch(task.key)

    def _go_to(self, step: int) -> bool:
        step = min(max(step, 0), self.total_steps - 1)
        if step == self.step:
            return False
        self._leave_step()
        self.step = step
        self._save(KEY_STEP, self.step)
        return True

    def advance(self) -> bool:
        if self.submitted or not self.can_advance():
            return False
        return self._go_to(self.step + 1)

    def retreat(self) -> bool:
        if self.submitted:
            return False
        return self._go_to(self.step - 1)

    # -- form fields -----------------------------------------------------

    def update_contact(self, **fields: Optional[str]) -> ContactInfo:
        self._ensure_editable()
        data = self.contact.model_dump()
        for name, value in fields.items():
            if name not in data:
                raise TypeError(f"unknown contact field: {name!r}")
            if value is not None:
                data[name] = str(value)
        self.contact = ContactInfo(**data)
        self._save(KEY_CONTACT, self.contact.model_dump())
        return self.contact

    def question(self, question_id: str) -> QuestionDefinition:
        q = question_by_id(self.questions, question_id)
        if q is None:
            raise UnknownQuestionError(question_id)
        return q

    def set_answer(self, question_id: str, value: AnswerValue | None) -> None:
        """Store an answer; `None` removes it. Choice answers must use the question's options."""
        self._ensure_editable()
        q = self.question(question_id)
        if value is None:
            self.answers.pop(q.id, None)
        else:
            if q.kind == KIND_MULTI:
                values = [value] if isinstance(value, str) else list(value)
                unknown = [v for v in values if v not in q.options]
                if unknown:
                    raise ValueError(f"not an option for {q.id!r}: {unknown!r}")
                value = values
            elif isinstance(value, list):
                raise ValueError(f"{q.id!r} takes a single value")
            elif q.kind == KIND_SINGLE and value and value not in q.options:
                raise ValueError(f"not an option for {q.id!r}: {value!r}")
            elif q.kind == KIND_DATE and value:
                date.fromisoformat(value)
            self.answers[q.id] = value
        self._save(KEY_ANSWERS, self.answers)

    def toggle_option(self, question_id: str, option: str) -> list[str]:
        """Checkbox behaviour for multi questions; selection order is kept."""
        q = self.question(question_id)
        if q.kind != KIND_MULTI:
            raise ValueError(f"{q.id!r} is not a multi-choice question")
        current = self.answers.get(q.id)
        selected = list(current) if isinstance(current, list) else []
        if option in selected:
            selected.remove(option)
        else:
            selected.append(option)
        self.set_answer(q.id, selected)
        return selected

    # -- sketches --------------------------------------------------------

    def sketch(self, key: str) -> SketchSurface:
        try:
            return self.sketches[key]
        except KeyError:
            raise UnknownSketchError(key) from None

    def pointer(self, key: str, event: PointerEvent) -> tuple[str, Optional[Stroke]]:
        surface = self.sketch(key)
        self._ensure_editable()
        outcome, stroke = surface.handle_pointer(event)
        if outcome == "committed":
            self._save_sketch(key)
        return outcome, stroke

    def undo(self, key: str) -> Optional[Stroke]:
        surface = self.sketch(key)
        self._ensure_editable()
        removed = surface.undo()
        self._save_sketch(key)
        return removed

    def clear(self, key: str) -> None:
        surface = self.sketch(key)
        self._ensure_editable()
        surface.clear()
        self._save_sketch(key)

    def set_tool(self, key: str, kind: str) -> None:
        surface = self.sketch(key)
        self._ensure_editable()
        surface.set_tool(kind)
        self._save_sketch(key)

    def set_width(self, key: str, px: float) -> None:
        surface = self.sketch(key)
        self._ensure_editable()
        surface.set_width(px)
        self._save_sketch(key)

    def resize_sketch(
        self, key: str, css_width: float, css_height: float | None = None, pixel_ratio: float = 1.0
    ) -> None:
        # render target only; not persisted and allowed after submission
        self.sketch(key).resize(css_width, css_height, pixel_ratio)

    def export_sketches(self) -> dict[str, str]:
        rasters = {}
        for key, surface in self.sketches.items():
            rasters[key] = surface.export_raster()
            self._save_sketch(key)
        return rasters

    # -- lifecycle -------------------------------------------------------

    def mark_submitted(self) -> None:
        self.submitted = True
        self._save(KEY_SUBMITTED, True)

    def reset(self, confirmed: bool = False) -> bool:
        """Wipe every stored field and start over. Irreversible; requires `confirmed`."""
        if not confirmed:
            return False
        for key in (KEY_STEP, KEY_CONTACT, KEY_ANSWERS, KEY_SUBMITTED, *(t.key for t in self.map_tasks)):
            self.store.delete(key)
        self.step = 0
        self.contact = ContactInfo()
        self.answers = {}
        self.sketches = {t.key: self._default_sketch(t) for t in self.map_tasks}
        self.submitted = False
        logger.info("questionnaire state reset")
        return True

    def snapshot(self) -> dict[str, Any]:
        q = self.question_for_step()
        task = self.map_task_for_step()
        errors = self.validation_errors()
        return {
            "step": self.step,
            "totalSteps": self.total_steps,
            "kind": self.step_kind(),
            "question": q.to_dict() if q is not None else None,
            "mapTask": (
                {"key": task.key, "title": task.title, "helper": task.helper}
                if task is not None
                else None
            ),
            "contact": self.contact.model_dump(),
            "answers": dict(self.answers),
            "sketches": {
                key: {
                    "imageUrl": s.image_url,
                    "strokeCount": len(s.strokes),
                    "strokeWidth": s.stroke_width,
                    "tool": s.tool,
                    "hasRaster": s.raster is not None,
                }
                for key, s in self.sketches.items()
            },
            "canAdvance": not errors,
            "errors": errors,
            "submitted": self.submitted,
        }
