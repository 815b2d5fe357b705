from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .lib.command import MASK

logger = logging.getLogger(__name__)


class EnrolmentCredential:
    """Enrolment key wrapper.

    The raw value is only handed out through reveal(); repr/str are masked so
    the key cannot leak through logging or the persisted state.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Optional[str] = None):
        self._value = (value or "").strip()

    def __bool__(self) -> bool:
        return bool(self._value)

    def __repr__(self) -> str:
        return f"EnrolmentCredential({MASK if self._value else ''!r})"

    __str__ = __repr__

    def reveal(self) -> str:
        return self._value

    def secrets(self) -> tuple[str, ...]:
        return (self._value,) if self._value else ()

    def redact(self, text: str) -> str:
        if not self._value or not text:
            return text
        return text.replace(self._value, MASK)

    def redact_file(self, path: str) -> bool:
        """Scrub the key from a file in place. Returns True if anything changed."""

        if not self._value:
            return False
        p = Path(path)
        if not p.is_file():
            return False

        raw = p.read_bytes()
        # msiexec writes UTF-16 logs; cover both encodings.
        needles = [
            (self._value.encode("utf-8"), MASK.encode("utf-8")),
            (self._value.encode("utf-16-le"), MASK.encode("utf-16-le")),
        ]
        scrubbed = raw
        for needle, repl in needles:
            scrubbed = scrubbed.replace(needle, repl)
        if scrubbed == raw:
            return False

        p.write_bytes(scrubbed)
        logger.info("Redacted enrolment key from %s", str(p))
        return True
