from __future__ import annotations

import logging

from .command import run_root
from .files import write_root_file

logger = logging.getLogger(__name__)

UNIT_MODE = 0o664


def render_unit(*, binary_path: str, bundle_extract_dir: str) -> str:
    return "\n".join(
        [
            "[Unit]",
            "Description=Enclave",
            "After=network.target",
            "",
            "[Service]",
            f'Environment="DOTNET_BUNDLE_EXTRACT_BASE_DIR={bundle_extract_dir}"',
            f"ExecStart={binary_path} supervisor-service",
            "Restart=on-failure",
            "",
            "[Install]",
            "WantedBy=multi-user.target",
            "",
        ]
    )


def write_unit(unit_path: str, *, binary_path: str, bundle_extract_dir: str, dry_run: bool = False) -> None:
    write_root_file(
        unit_path,
        render_unit(binary_path=binary_path, bundle_extract_dir=bundle_extract_dir),
        mode=UNIT_MODE,
        dry_run=dry_run,
    )
    logger.info("Wrote systemd unit %s", unit_path)


def systemctl(*args: str, dry_run: bool = False, check: bool = True, user_global: bool = False) -> bool:
    argv = ["systemctl"]
    if user_global:
        argv.append("--global")
    return run_root([*argv, *args], check=check, dry_run=dry_run).ok


def daemon_reload(*, dry_run: bool = False) -> None:
    systemctl("daemon-reload", dry_run=dry_run)


def stop(service: str, *, dry_run: bool = False) -> bool:
    """Stop service; a missing or inactive unit is not an error."""

    stopped = systemctl("stop", service, check=False, dry_run=dry_run)
    if stopped:
        logger.info("Service %s stopped.", service)
    return stopped


def is_active(service: str) -> bool:
    return systemctl("is-active", "--quiet", service, check=False)


def enable_and_start(service: str, *, dry_run: bool = False) -> bool:
    """Enable for boot and start. Returns False instead of raising if either fails."""

    if not systemctl("enable", service, check=False, dry_run=dry_run):
        logger.warning("Failed to enable %s", service)
        return False
    if not systemctl("start", service, check=False, dry_run=dry_run):
        logger.warning("Failed to start %s", service)
        return False
    return True


def start(service: str, *, dry_run: bool = False) -> bool:
    return systemctl("start", service, check=False, dry_run=dry_run)


def disable_now(service: str, *, user_global: bool = False, dry_run: bool = False) -> bool:
    """Disable and stop; tolerates units that were never active or do not exist."""

    if user_global:
        # --global only edits the per-user presets; running user instances are left alone.
        ok = systemctl("disable", service, check=False, user_global=True, dry_run=dry_run)
    else:
        ok = systemctl("disable", "--now", service, check=False, dry_run=dry_run)
    if not ok:
        logger.info("Service %s was not enabled/active", service)
    return ok
