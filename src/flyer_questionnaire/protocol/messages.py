from __future__ import annotations

from typing import Literal, Optional, TypeAlias, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Points are device-pixel coordinates captured at draw time:
# - x,y = css offset within the surface * device pixel ratio
Point2: TypeAlias = list[float]  # [x, y]
AnswerValue: TypeAlias = Union[str, list[str]]

ToolKind: TypeAlias = Literal["pen", "eraser"]
PointerPhase: TypeAlias = Literal["down", "move", "up", "cancel"]


class StrokeModel(BaseModel):
    tool: ToolKind = "pen"
    width: float = Field(default=3.0, gt=0)
    points: list[Point2] = Field(default_factory=list)


class PointerEvent(BaseModel):
    """One pointer sample in css pixels relative to the surface's top-left."""

    phase: PointerPhase
    x: float = 0.0
    y: float = 0.0


class PointerMsg(PointerEvent):
    t: Literal["pointer"]


class ContactInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    phone: str = ""
    email: str = ""


class ContactUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class SketchPayload(BaseModel):
    """Outbound map shape; `png` is accepted as an older name for `raster`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    imageUrl: str = ""
    strokes: list[StrokeModel] = Field(default_factory=list)
    strokeWidth: float = Field(default=3.0, gt=0)
    raster: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("raster", "png")
    )


class SketchRecord(SketchPayload):
    """Persisted map shape (adds the selected tool)."""

    tool: ToolKind = "pen"


class SubmissionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subject: str = ""
    contact: ContactInfo = Field(default_factory=ContactInfo)
    answers: dict[str, Optional[AnswerValue]] = Field(default_factory=dict)
    mapA: SketchPayload = Field(default_factory=SketchPayload)
    mapB: SketchPayload = Field(default_factory=SketchPayload)


# HTTP request bodies


class AnswerIn(BaseModel):
    value: Optional[AnswerValue] = None


class ToggleIn(BaseModel):
    option: str


class ToolIn(BaseModel):
    tool: ToolKind


class WidthIn(BaseModel):
    width: float = Field(gt=0)


class SizeIn(BaseModel):
    width: float = Field(gt=0, le=4096)
    height: Optional[float] = Field(default=None, gt=0, le=4096)
    pixel_ratio: float = Field(default=1.0, gt=0, le=8)


class ResetIn(BaseModel):
    confirm: bool = False
