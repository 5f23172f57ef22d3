"""Logical session names and their filesystem storage keys.

A logical name looks like ``category:name:subcategory``. On disk every colon
becomes ``___``; runs of underscores are collapsed first so a caller cannot
forge that separator.
"""

from __future__ import annotations

import re
import time

from session_think.errors import InvalidName
from session_think.sessions.models import random_token

DEFAULT_NAME_PATTERN = r"^[a-zA-Z0-9_-]+(:[a-zA-Z0-9_-]+){2,}$"
SEPARATOR = "___"
FILE_SUFFIX = ".json"
EPHEMERAL_PREFIX = "TEMP"

_UNDERSCORE_RUN = re.compile(r"_+")
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

_EXPECTED_FORMAT = (
    "Expected format: category:name:subcategory (e.g., thesis:NVDA:ai_dominance)"
)


class SessionNamer:
    """Validate, encode and decode session names against one pattern."""

    def __init__(self, pattern: str = DEFAULT_NAME_PATTERN) -> None:
        self.pattern = re.compile(pattern)

    def validate(self, name: str) -> str:
        if not isinstance(name, str) or not self.pattern.search(name):
            raise InvalidName(f"Invalid session name format. {_EXPECTED_FORMAT}", sessionName=name)
        if self.decode(self.encode(name)) != name:
            raise InvalidName(
                "Invalid session name: repeated underscores or a segment ending in "
                f"an underscore cannot be stored unambiguously. {_EXPECTED_FORMAT}",
                sessionName=name,
            )
        return name

    def encode(self, name: str) -> str:
        key = _UNDERSCORE_RUN.sub("_", name)
        key = key.replace(":", SEPARATOR)
        return _UNSAFE_CHARS.sub("_", key)

    def decode(self, key: str) -> str:
        return key.removesuffix(FILE_SUFFIX).replace(SEPARATOR, ":")

    def filename(self, name: str) -> str:
        return self.encode(name) + FILE_SUFFIX

    def generate_ephemeral(self) -> str:
        """A fresh ``TEMP:<epoch-ms>:<token>`` name for callers that gave none."""
        return f"{EPHEMERAL_PREFIX}:{int(time.time() * 1000)}:{random_token(6)}"
