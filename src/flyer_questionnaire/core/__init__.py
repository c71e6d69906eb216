from .errors import AlreadySubmittedError, DeliveryError, QuestionnaireError
from .packager import HttpDelivery, RelayDelivery, SubmissionPackager, SubmitResult
from .questions import MAP_TASKS, QUESTIONS, MapTask, QuestionDefinition
from .sketch import SketchSurface, Stroke, SurfaceSize
from .storage import MemoryStore, SqliteStore
from .wizard import WizardController

__all__ = [
    "AlreadySubmittedError",
    "DeliveryError",
    "QuestionnaireError",
    "HttpDelivery",
    "RelayDelivery",
    "SubmissionPackager",
    "SubmitResult",
    "MAP_TASKS",
    "QUESTIONS",
    "MapTask",
    "QuestionDefinition",
    "SketchSurface",
    "Stroke",
    "SurfaceSize",
    "MemoryStore",
    "SqliteStore",
    "WizardController",
]
