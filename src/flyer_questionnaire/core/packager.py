from __future__ import annotations

import asyncio
import http.client
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from flyer_questionnaire.protocol.constants import KEY_MAP_A, KEY_MAP_B
from flyer_questionnaire.protocol.messages import SketchPayload, SubmissionPayload

from .errors import DeliveryError, MailerConfigError, MailerProviderError
from .wizard import WizardController

if TYPE_CHECKING:
    from flyer_questionnaire.server.mailer import ResendMailer

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Bee Flyer Application"
SUBMIT_FAILED_MESSAGE = "Could not send application automatically"
THANK_YOU_MESSAGE = (
    "Thank you for your interest, we will contact you to proceed with your "
    "application in due course."
)


class Delivery(Protocol):
    """External delivery collaborator: raises `DeliveryError` on any failure."""

    async def deliver(self, payload: SubmissionPayload) -> None: ...


def _post_json_sync(*, url: str, timeout_s: float | None, body: dict) -> tuple[int, str]:
    data = json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    req = urllib.request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    kwargs = {} if timeout_s is None else {"timeout": timeout_s}
    with urllib.request.urlopen(req, **kwargs) as resp:
        return resp.status, resp.read().decode("utf-8", errors="replace")


class HttpDelivery:
    """POST the payload to a send-email endpoint; any 2xx is success."""

    def __init__(self, url: str, *, timeout_s: float | None = None) -> None:
        self.url = url
        self.timeout_s = timeout_s

    async def deliver(self, payload: SubmissionPayload) -> None:
        try:
            status, body = await asyncio.to_thread(
                _post_json_sync,
                url=self.url,
                timeout_s=self.timeout_s,
                body=payload.model_dump(mode="json"),
            )
        except urllib.error.HTTPError as e:
            details = e.read().decode("utf-8", errors="replace") if e.fp is not None else ""
            raise DeliveryError(f"send-email returned {e.code}", status=e.code, details=details) from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise DeliveryError(f"send-email unreachable: {e}") from e
        except (http.client.HTTPException, ValueError) as e:
            # malformed response or unusable url
            raise DeliveryError(f"send-email failed: {e!r}") from e
        if not 200 <= status < 300:
            raise DeliveryError(f"send-email returned {status}", status=status, details=body)


class RelayDelivery:
    """Hand the payload straight to the in-process email relay."""

    def __init__(self, mailer: "ResendMailer") -> None:
        self.mailer = mailer

    async def deliver(self, payload: SubmissionPayload) -> None:
        try:
            await asyncio.to_thread(self.mailer.send_application, payload)
        except MailerConfigError as e:
            raise DeliveryError(str(e), status=500) from e
        except MailerProviderError as e:
            raise DeliveryError(str(e), status=e.status, details=e.details) from e


@dataclass(frozen=True)
class SubmitResult:
    ok: bool
    message: str = ""

    def to_dict(self) -> dict[str, object]:
        return {"ok": self.ok, "message": self.message}


class SubmissionPackager:
    """Assemble the wizard's data into one payload and hand it to `delivery`."""

    def __init__(
        self,
        wizard: WizardController,
        delivery: Delivery,
        *,
        title: str = DEFAULT_TITLE,
    ) -> None:
        self.wizard = wizard
        self.delivery = delivery
        self.title = title

    def subject(self) -> str:
        return f"{self.title} - {self.wizard.contact.name or 'Unknown'}"

    def build_payload(self) -> SubmissionPayload:
        # Rasterize again: the applicant may have edited a sketch and then
        # jumped straight to submit without leaving its step.
        rasters = self.wizard.export_sketches()
        maps = {}
        for key, surface in self.wizard.sketches.items():
            maps[key] = SketchPayload(
                imageUrl=surface.image_url,
                strokes=[s.to_model() for s in surface.strokes],
                strokeWidth=surface.stroke_width,
                raster=rasters[key],
            )
        return SubmissionPayload(
            subject=self.subject(),
            contact=self.wizard.contact.model_copy(),
            answers=dict(self.wizard.answers),
            mapA=maps[KEY_MAP_A],
            mapB=maps[KEY_MAP_B],
        )

    async def submit(self) -> SubmitResult:
        wizard = self.wizard
        if wizard.submitted:
            return SubmitResult(True, "Application already submitted.")
        if wizard.step != wizard.review_step:
            return SubmitResult(False, "Please complete every step before submitting.")

        payload = self.build_payload()
        try:
            await self.delivery.deliver(payload)
        except DeliveryError as e:
            logger.warning("submission delivery failed: %s %s", e, e.details)
            return SubmitResult(False, SUBMIT_FAILED_MESSAGE)

        wizard.mark_submitted()
        logger.info("application submitted for %s", wizard.contact.email)
        return SubmitResult(True, THANK_YOU_MESSAGE)
