from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import DownloadFailed
from ..lib import systemd
from ..lib.agent import EnclaveAgent, read_installed_state
from ..lib.download import download_to_temp, extract_binary
from ..lib.env import SERVICE_NAME
from ..lib.hostdetect import HostProfile, OSFamily
from ..lib.msi import install_msi
from ..lib.release import ReleaseDescriptor, Version
from ..pipeline import InstallCtx
from ..state_store import add_warning, decision, record_decision

logger = logging.getLogger(__name__)


def same_version(installed: Optional[str], target: str) -> bool:
    if not installed:
        return False
    try:
        return Version.parse(installed) == Version.parse(target)
    except ValueError:
        return installed.strip() == target.strip()


class InstallAgentStep:
    step_id = "40_install_agent"

    def skip_reason(self, ctx: InstallCtx, state: Dict[str, Any]) -> Optional[str]:
        if decision(state, "delegated_to_package"):
            return "installed by the package manager"
        return None

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = HostProfile.from_dict(state["host"])
        release = ReleaseDescriptor.from_dict(state["release"])
        windows = host.os_family == OSFamily.WINDOWS
        service = None if windows else SERVICE_NAME

        agent = EnclaveAgent(ctx.paths.binary, dry_run=ctx.dry_run)
        before = read_installed_state(agent, identity_path=ctx.paths.identity, service=service)
        state["installed_before"] = before.to_dict()
        record_decision(state, "previous_version", before.installed_version)

        if not ctx.cfg.force and same_version(before.installed_version, release.version):
            logger.info("enclave %s is already installed; nothing to do.", release.version)
            record_decision(state, "nothing_to_do", True)
            if windows:
                # The MSI already owns the service and enrolment on this host.
                record_decision(state, "delegated_to_package", True)
            return state

        url = release.url_for(host.architecture)
        if not url:
            raise DownloadFailed(f"No {host.architecture.value} artifact for release {release.version}")

        if windows:
            self._install_windows(ctx, state, url)
        else:
            self._install_linux(ctx, state, url)

        record_decision(state, "installed_version", release.version)
        return state

    def _install_linux(self, ctx: InstallCtx, state: Dict[str, Any], url: str) -> None:
        # Stop the supervisor before replacing its binary; a missing service is fine.
        systemd.stop(SERVICE_NAME, dry_run=ctx.dry_run)

        logger.info("Installing %s", url.rsplit("/", 1)[-1])
        if ctx.dry_run:
            logger.info("Would download %s", url)
        else:
            archive = download_to_temp(url, session=ctx.session, suffix=".tar.gz")
            try:
                extract_binary(archive, ctx.paths.binary)
            finally:
                Path(archive).unlink(missing_ok=True)

        systemd.write_unit(
            ctx.paths.unit,
            binary_path=ctx.paths.binary,
            bundle_extract_dir=ctx.paths.bundle_extract_dir,
            dry_run=ctx.dry_run,
        )

        logger.info("Starting Enclave service.")
        systemd.daemon_reload(dry_run=ctx.dry_run)
        started = systemd.enable_and_start(SERVICE_NAME, dry_run=ctx.dry_run)
        if started:
            agent = EnclaveAgent(ctx.paths.binary, dry_run=ctx.dry_run)
            started = agent.wait_until_ready(
                timeout_s=ctx.cfg.ready_timeout_s,
                interval_s=ctx.cfg.ready_interval_s,
            )
        record_decision(state, "service_started", started)
        if not started:
            add_warning(state, "Enclave service did not become ready; continuing.")

    def _install_windows(self, ctx: InstallCtx, state: Dict[str, Any], url: str) -> None:
        if ctx.dry_run:
            logger.info("Would download and install %s", url)
        else:
            msi = download_to_temp(url, session=ctx.session, suffix=".msi")
            try:
                install_msi(msi, log_path=ctx.paths.msi_log, credential=ctx.credential)
            finally:
                Path(msi).unlink(missing_ok=True)
        # The MSI registers the service and enrols with the key it was given.
        record_decision(state, "delegated_to_package", True)
