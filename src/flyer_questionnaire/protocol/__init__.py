from .constants import (
    KEY_ANSWERS,
    KEY_CONTACT,
    KEY_MAP_A,
    KEY_MAP_B,
    KEY_STEP,
    KEY_SUBMITTED,
    MAP_KEYS,
    T_ERROR,
    T_HELLO,
    T_POINTER,
    T_STROKE_COMMITTED,
    T_STROKE_DISCARDED,
    TOOL_ERASER,
    TOOL_PEN,
)

__all__ = [
    "KEY_ANSWERS",
    "KEY_CONTACT",
    "KEY_MAP_A",
    "KEY_MAP_B",
    "KEY_STEP",
    "KEY_SUBMITTED",
    "MAP_KEYS",
    "T_ERROR",
    "T_HELLO",
    "T_POINTER",
    "T_STROKE_COMMITTED",
    "T_STROKE_DISCARDED",
    "TOOL_ERASER",
    "TOOL_PEN",
]
