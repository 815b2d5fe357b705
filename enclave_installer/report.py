from __future__ import annotations

import sys
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, TextIO

BOLD = "\033[1m"
RESET = "\033[0m"


@dataclass(frozen=True)
class StatusReport:
    system_identity: Optional[str] = None
    virtual_address: Optional[str] = None
    product_version: Optional[str] = None
    previous_version: Optional[str] = None
    new_version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _dig(data: Dict[str, Any], *keys: str) -> Optional[str]:
    cur: Any = data
    for k in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(k)
    return str(cur) if cur not in (None, "") else None


def parse_status(
    status: Optional[Dict[str, Any]],
    *,
    previous_version: Optional[str] = None,
    new_version: Optional[str] = None,
) -> StatusReport:
    """Pull identity, virtual address and version out of ``enclave status --json``."""

    status = status or {}
    product_version = _dig(status, "ProductVersion")
    return StatusReport(
        system_identity=_dig(status, "Profile", "Certificate", "SubjectDistinguishedName"),
        virtual_address=_dig(status, "Profile", "VirtualAddress"),
        product_version=product_version,
        previous_version=previous_version,
        new_version=new_version or product_version,
    )


def print_quick_start(out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    out.write(
        "\n"
        f"{BOLD}Learn how to use Enclave at https://enclave.io/docs/{RESET}\n"
        "Quick start:\n"
        f"    {BOLD}enclave add [PEER_NAME] -d [DESCRIPTION]{RESET} to authorise a connection "
        "to another system running enclave.\n"
        f"    {BOLD}enclave status{RESET} for status.\n\n"
    )


def print_report(report: StatusReport, out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    rows = [
        ("System identity", report.system_identity),
        ("Virtual address", report.virtual_address),
        ("Previous version", report.previous_version),
        ("Installed version", report.new_version),
    ]
    for label, value in rows:
        out.write(f"{label + ':':<20}{value or '-'}\n")
