from __future__ import annotations


class QuestionnaireError(Exception):
    """Base class for recoverable questionnaire errors."""


class AlreadySubmittedError(QuestionnaireError):
    """Raised when state is edited after a successful submission."""


class UnknownQuestionError(QuestionnaireError, KeyError):
    pass


class UnknownSketchError(QuestionnaireError, KeyError):
    pass


class DeliveryError(QuestionnaireError):
    """Transport or provider failure while handing off a submission."""

    def __init__(self, message: str, *, status: int | None = None, details: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.details = details


class MailerConfigError(QuestionnaireError):
    """Relay is missing required configuration (e.g. provider credential)."""


class MailerProviderError(QuestionnaireError):
    def __init__(self, message: str, *, status: int | None = None, details: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.details = details
