from __future__ import annotations

import logging
from pathlib import Path

from ..credential import EnrolmentCredential
from ..errors import CommandFailed
from .command import run_cmd

logger = logging.getLogger(__name__)

ENROLMENT_KEY_PROPERTY = "ENROLMENT_KEY"


def install_msi(
    msi_path: str,
    *,
    log_path: str,
    credential: EnrolmentCredential,
    dry_run: bool = False,
) -> None:
    """Run msiexec quietly with verbose logging.

    The MSI writes its properties, enrolment key included, to log_path, so the
    log is scrubbed as soon as msiexec returns, whether or not it succeeded.
    """

    Path(log_path).parent.mkdir(parents=True, exist_ok=True)
    argv = ["msiexec.exe", "/i", msi_path, "/qn", "/norestart", "/l*v", log_path]
    if credential:
        argv.append(f"{ENROLMENT_KEY_PROPERTY}={credential.reveal()}")

    try:
        r = run_cmd(argv, check=False, secrets=credential.secrets(), dry_run=dry_run)
    finally:
        credential.redact_file(log_path)

    # 3010: success, reboot required.
    if r.returncode not in (0, 3010):
        raise CommandFailed(f"msiexec failed ({r.returncode}); see {log_path}")
    logger.info("MSI installed (exit %s)", r.returncode)
