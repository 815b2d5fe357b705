"""Wrapper around the vendor ``enclave`` binary.

Enrolment and the fabric itself live inside the binary; the
installer only shells out to it and interprets exit codes and ``--json`` output.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from ..credential import EnrolmentCredential
from . import systemd
from .command import CmdResult, run_root
from .files import root_path_exists

logger = logging.getLogger(__name__)

_VERSION_IN_TEXT = re.compile(r"\d+\.\d+\.\d+(?:\.\d+)?")


class EnclaveAgent:
    def __init__(self, binary: str, *, dry_run: bool = False):
        self.binary = binary
        self.dry_run = dry_run

    def _run(self, *args: str, check: bool = False, secrets=()) -> CmdResult:
        return run_root([self.binary, *args], check=check, dry_run=self.dry_run, secrets=secrets)

    def version(self) -> Optional[str]:
        """Version of the installed binary, or None if it is missing or unusable."""

        r = run_root([self.binary, "version"], check=False)
        if not r.ok:
            return None
        m = _VERSION_IN_TEXT.search(r.stdout)
        return m.group(0) if m else None

    def enrol(self, credential: EnrolmentCredential) -> bool:
        args = ["enrol"]
        if credential:
            args.append(credential.reveal())
        return self._run(*args, secrets=credential.secrets()).ok

    def start_and_wait(self) -> bool:
        return self._run("start", "-w").ok

    def status(self) -> Optional[Dict[str, Any]]:
        r = run_root([self.binary, "status", "--json"], check=False)
        if not r.ok:
            return None
        try:
            data = json.loads(r.stdout)
        except ValueError:
            logger.warning("enclave status returned non-JSON output")
            return None
        return data if isinstance(data, dict) else None

    def wait_until_ready(self, *, timeout_s: float = 30.0, interval_s: float = 1.0) -> bool:
        """Poll ``status --json`` until the supervisor answers or timeout_s elapses."""

        if self.dry_run:
            return True
        deadline = time.monotonic() + timeout_s
        attempt = 0
        while True:
            attempt += 1
            if self.status() is not None:
                logger.info("Enclave supervisor ready after %d probe(s)", attempt)
                return True
            if time.monotonic() >= deadline:
                logger.warning("Enclave supervisor not ready after %.0fs", timeout_s)
                return False
            time.sleep(interval_s)


@dataclass(frozen=True)
class InstalledAgentState:
    is_installed: bool = False
    installed_version: Optional[str] = None
    is_enrolled: bool = False
    is_service_running: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def read_installed_state(agent: EnclaveAgent, *, identity_path: str, service: Optional[str]) -> InstalledAgentState:
    """Observe the live system: binary, identity profile and service manager."""

    installed = root_path_exists(agent.binary)
    if service:
        running = systemd.is_active(service)
    else:
        running = installed and agent.status() is not None
    state = InstalledAgentState(
        is_installed=installed,
        installed_version=agent.version() if installed else None,
        is_enrolled=root_path_exists(identity_path),
        is_service_running=running,
    )
    logger.info(
        "Installed: %s version=%s enrolled=%s running=%s",
        state.is_installed,
        state.installed_version,
        state.is_enrolled,
        state.is_service_running,
    )
    return state
