from __future__ import annotations

import html
from typing import Optional

from flyer_questionnaire.core.questions import QUESTIONS, QuestionDefinition, question_by_id
from flyer_questionnaire.core.rendering import PNG_DATA_URI_PREFIX
from flyer_questionnaire.protocol.messages import AnswerValue, SketchPayload, SubmissionPayload


def _esc(v: object) -> str:
    return html.escape("" if v is None else str(v), quote=True)


def _answer_text(value: Optional[AnswerValue]) -> str:
    if isinstance(value, list):
        return ", ".join(_esc(v) for v in value)
    if value is None or value == "":
        return "—"
    return _esc(value)


def _map_section(title: str, sketch: SketchPayload) -> str:
    # only inline our own PNG snapshots; anything else could smuggle markup
    if sketch.raster and sketch.raster.startswith(PNG_DATA_URI_PREFIX):
        body = f'<img src="{_esc(sketch.raster)}" alt="{_esc(title)} drawing" style="max-width:100%;"/>'
    else:
        body = "<p>No drawing</p>"
    return f"<h3>{_esc(title)}</h3>\n{body}"


def render_application_html(
    payload: SubmissionPayload,
    *,
    title: str,
    questions: tuple[QuestionDefinition, ...] = QUESTIONS,
) -> str:
    """
    Email body for one application.

    Answers are listed in payload order under the question's label when the id
    is known, else under the raw id.
    """
    items = []
    for qid, value in payload.answers.items():
        q = question_by_id(questions, qid)
        label = q.label if q is not None else qid
        items.append(f"<li><strong>{_esc(label)}</strong>: {_answer_text(value)}</li>")
    c = payload.contact
    return f"""
<h2>{_esc(title)}</h2>
<p><strong>Name:</strong> {_esc(c.name)}</p>
<p><strong>Phone:</strong> {_esc(c.phone)}</p>
<p><strong>Email:</strong> {_esc(c.email)}</p>
<hr/>
<h3>Answers</h3>
<ul>
{"".join(items)}
</ul>
<hr/>
{_map_section("Map A", payload.mapA)}
{_map_section("Map B", payload.mapB)}
""".strip()
