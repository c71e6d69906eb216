import http.client
import io
import urllib.error

import pytest

from flyer_questionnaire.core.errors import MailerConfigError, MailerProviderError
from flyer_questionnaire.server import mailer as mailer_mod
from flyer_questionnaire.server.email_template import render_application_html
from flyer_questionnaire.server.mailer import ResendMailer
from flyer_questionnaire.protocol.messages import SubmissionPayload

PNG_URI = "data:image/png;base64,iVBORw0KGgo="


def _payload(**overrides):
    data = {
        "subject": "",
        "contact": {"name": "Jane <b>Doe</b>", "phone": "07123456789", "email": "jane@example.com"},
        "answers": {"availability_days": ["Monday", "Friday"], "walk10mi": "Yes", "custom": None},
        "mapA": {"imageUrl": "/garden-city-map-with-x.png", "raster": PNG_URI},
        "mapB": {"imageUrl": "/creggan-no-x.png"},
    }
    data.update(overrides)
    return SubmissionPayload.model_validate(data)


def _mailer(api_key="re_test"):
    return ResendMailer(
        api_key=api_key,
        sender="Bee Flyer <onboarding@resend.dev>",
        recipients=["hiring@example.com"],
        title="Bee Flyer Application",
    )


def test_template_escapes_and_labels_answers():
    body = render_application_html(_payload(), title="Bee Flyer Application")

    assert "<h2>Bee Flyer Application</h2>" in body
    assert "Jane &lt;b&gt;Doe&lt;/b&gt;" in body
    assert "<b>Doe</b>" not in body
    assert "What days are you available to work?</strong>: Monday, Friday" in body
    assert "<strong>custom</strong>: —" in body
    assert f'<img src="{PNG_URI}"' in body
    assert body.count("<p>No drawing</p>") == 1


def test_template_ignores_non_png_rasters():
    payload = _payload(mapA={"raster": 'javascript:alert(1)" onerror="x'})
    body = render_application_html(payload, title="T")
    assert "javascript" not in body
    assert body.count("<p>No drawing</p>") == 2


def test_png_is_accepted_as_raster_alias():
    payload = _payload(mapB={"png": PNG_URI})
    assert payload.mapB.raster == PNG_URI


def test_subject_falls_back_to_title_and_name():
    msg = _mailer().build_message(_payload(contact={"name": ""}))
    assert msg["subject"] == "Bee Flyer Application - Unknown"
    assert msg["to"] == ["hiring@example.com"]

    msg = _mailer().build_message(_payload(subject="Custom"))
    assert msg["subject"] == "Custom"


def test_missing_api_key_is_a_config_error():
    with pytest.raises(MailerConfigError, match="RESEND_API_KEY not set"):
        _mailer(api_key=None).send_application(_payload())


def test_send_posts_to_resend(monkeypatch):
    sent = {}

    def fake_call(**kwargs):
        sent.update(kwargs)
        return '{"id": "email_123"}'

    monkeypatch.setattr(mailer_mod, "_call_resend_sync", fake_call)
    _mailer().send_application(_payload())

    assert sent["api_key"] == "re_test"
    assert sent["base_url"] == "https://api.resend.com"
    assert sent["body"]["from"] == "Bee Flyer <onboarding@resend.dev>"
    assert "<h3>Answers</h3>" in sent["body"]["html"]


def test_provider_rejection_carries_details(monkeypatch):
    def rejected(**kwargs):
        raise urllib.error.HTTPError(
            "https://api.resend.com/emails", 422, "Unprocessable", None, io.BytesIO(b'{"message":"bad from"}')
        )

    monkeypatch.setattr(mailer_mod, "_call_resend_sync", rejected)
    with pytest.raises(MailerProviderError) as info:
        _mailer().send_application(_payload())
    assert str(info.value) == "Resend error"
    assert info.value.status == 422
    assert "bad from" in info.value.details


def test_garbled_provider_response_is_a_provider_error(monkeypatch):
    def garbled(**kwargs):
        raise http.client.BadStatusLine("HELLO")

    monkeypatch.setattr(mailer_mod, "_call_resend_sync", garbled)
    with pytest.raises(MailerProviderError) as info:
        _mailer().send_application(_payload())
    assert str(info.value) == "Resend error"
    assert "BadStatusLine" in info.value.details
