"""Quiz-session constants shared across the core and host layers."""

DEFAULT_TICK_SECONDS: int = 1
LOW_TIME_WARNING_SECONDS: int = 60
DEFAULT_ESSAY_MIN_WORDS: int = 0
