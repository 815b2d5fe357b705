from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, Optional

from .errors import RemovalNotConfirmed
from .lib import systemd
from .lib.env import PACKAGE_NAME, SERVICE_NAME, USER_AUTH_SERVICE_NAME
from .lib.files import remove_paths
from .lib.hostdetect import HostProfile
from .lib.pkg import package_installed, remove_packages
from .pipeline import InstallCtx

logger = logging.getLogger(__name__)


def confirm_removal(*, yes: bool, prompt: Optional[Callable[[str], str]] = None) -> None:
    """Removal is destructive: require --yes, or an interactive 'yes'."""

    if yes:
        return
    if prompt is None:
        if not sys.stdin.isatty():
            raise RemovalNotConfirmed("Refusing to remove Enclave unattended without --yes.")
        prompt = input
    answer = prompt("This removes Enclave, its identity and configuration. Type 'yes' to continue: ")
    if answer.strip().lower() != "yes":
        raise RemovalNotConfirmed("Removal cancelled.")


def remove_agent(ctx: InstallCtx, host: HostProfile) -> Dict[str, Any]:
    dry_run = ctx.dry_run
    summary: Dict[str, Any] = {"host": host.to_dict()}

    logger.info("Removing Enclave.")
    summary["services_disabled"] = {
        SERVICE_NAME: systemd.disable_now(SERVICE_NAME, dry_run=dry_run),
        USER_AUTH_SERVICE_NAME: systemd.disable_now(USER_AUTH_SERVICE_NAME, user_global=True, dry_run=dry_run),
    }

    packaged = package_installed(host.package_manager, PACKAGE_NAME)
    summary["removed_by_package_manager"] = packaged
    if packaged and host.package_manager is not None:
        remove_packages(host.package_manager, [PACKAGE_NAME], dry_run=dry_run)

    # Package removal leaves identity and config behind; manual installs leave everything.
    paths = [
        ctx.paths.binary,
        ctx.paths.unit,
        ctx.paths.user_auth_unit,
        ctx.paths.config_dir,
        ctx.paths.bundle_extract_dir,
    ]
    summary["removed_paths"] = remove_paths(paths, dry_run=dry_run)

    systemd.systemctl("daemon-reload", check=False, dry_run=dry_run)
    logger.info("Enclave removed.")
    return summary
