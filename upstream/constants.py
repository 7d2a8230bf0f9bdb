"""Constants for the upstream monitor API."""

from typing import Final

DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
DEFAULT_TIMEOUT: Final[float] = 15.0
DEFAULT_USER_AGENT: Final[str] = "quotawake/0.1.0"

ACCEPT_LANGUAGE: Final[str] = "en-US"
SUCCESS_CODE: Final[int] = 200

WAKE_MODEL: Final[str] = "glm-5"
WAKE_MESSAGES: Final[list[dict[str, str]]] = [
    {"role": "system", "content": "You are a helpful assistant."},
    {"role": "user", "content": "ping"},
]
