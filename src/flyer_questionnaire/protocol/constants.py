# Protocol constants (stringly-typed; canonical list lives here)

# drawing tools
TOOL_PEN = "pen"
TOOL_ERASER = "eraser"
TOOLS = (TOOL_PEN, TOOL_ERASER)

# pointer phases (mouse and touch are unified at the page boundary)
PHASE_DOWN = "down"
PHASE_MOVE = "move"
PHASE_UP = "up"
PHASE_CANCEL = "cancel"

# question kinds
KIND_SINGLE = "single"
KIND_MULTI = "multi"
KIND_LONGTEXT = "longtext"
KIND_DATE = "date"

# wizard step kinds
STEP_CONTACT = "contact"
STEP_QUESTION = "question"
STEP_SKETCH = "sketch"
STEP_REVIEW = "review"

# persisted keys, one JSON entry each
KEY_STEP = "step"
KEY_CONTACT = "contact"
KEY_ANSWERS = "answers"
KEY_MAP_A = "mapA"
KEY_MAP_B = "mapB"
KEY_SUBMITTED = "submitted"
MAP_KEYS = (KEY_MAP_A, KEY_MAP_B)

# websocket messages
T_HELLO = "hello"
T_POINTER = "pointer"
T_STROKE_COMMITTED = "stroke_committed"
T_STROKE_DISCARDED = "stroke_discarded"
T_ERROR = "error"
