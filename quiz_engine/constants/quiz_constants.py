"""Quiz-related constants shared by the attempt engine and its adapters."""

RETRY_MIN_GAP: int = 3
DEFAULT_AUTO_ADVANCE_SECONDS: int = 3
TIME_WARNING_WINDOW_SECONDS: int = 300
MIN_OPTION_COUNT: int = 2
MAX_SCORE: int = 100
