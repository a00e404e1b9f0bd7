"""Network configuration constants for the HTTP host."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
TICK_INTERVAL_SECONDS: float = 1.0
