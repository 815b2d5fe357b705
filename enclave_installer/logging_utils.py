from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .credential import EnrolmentCredential

DEFAULT_LOG_PATH = "/var/log/enclave-installer.log"


class RedactingFilter(logging.Filter):
    """Replace the enrolment key in every record before it reaches a handler."""

    def __init__(self, credential: EnrolmentCredential):
        super().__init__()
        self.credential = credential

    def filter(self, record: logging.LogRecord) -> bool:
        if self.credential:
            msg = record.getMessage()
            redacted = self.credential.redact(msg)
            if redacted != msg:
                record.msg = redacted
                record.args = None
        return True


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
    credential: Optional[EnrolmentCredential] = None,
) -> str:
    """Configure logging.

    Every decision and command goes to the log file, which defaults to
    /var/log/enclave-installer.log. Unprivileged runs usually cannot write
    there, so we fall back to a file in the working directory and report the
    path actually used.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_enclave_configured", False):
        return getattr(logger, "_enclave_log_path", log_path)

    chosen_path = log_path
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler: logging.Handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = str(Path.cwd() / "enclave-installer.log")
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        if credential:
            h.addFilter(RedactingFilter(credential))
        logger.addHandler(h)

    setattr(logger, "_enclave_configured", True)
    setattr(logger, "_enclave_handlers", handlers)
    setattr(logger, "_enclave_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path


def reset_logging() -> None:
    """Drop handlers installed by configure_logging (used between runs and in tests)."""

    logger = logging.getLogger()
    for h in getattr(logger, "_enclave_handlers", []):
        logger.removeHandler(h)
        h.close()
    for attr in ("_enclave_configured", "_enclave_log_path", "_enclave_handlers"):
        if hasattr(logger, attr):
            delattr(logger, attr)
