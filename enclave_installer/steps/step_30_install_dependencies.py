from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..lib.apt_repo import install_enclave_package, register_apt_repository
from ..lib.hostdetect import HostProfile, OSFamily
from ..lib.pkg import install_dependencies
from ..pipeline import InstallCtx
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class InstallDependenciesStep:
    step_id = "30_install_dependencies"

    def skip_reason(self, ctx: InstallCtx, state: Dict[str, Any]) -> Optional[str]:
        host = HostProfile.from_dict(state["host"])
        if host.os_family == OSFamily.WINDOWS:
            return "MSI carries its own runtime"
        if host.os_family == OSFamily.UNSUPPORTED:
            return "no known package manager"
        return None

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = HostProfile.from_dict(state["host"])
        logger.info("Checking/installing dependencies.")

        if host.os_family == OSFamily.DEBIAN:
            logger.info("Debian-based distro detected. Installing via package manager.")
            register_apt_repository(
                channel=ctx.cfg.channel.value,
                keyring_path=ctx.paths.apt_keyring,
                sources_dir=ctx.paths.apt_sources_dir,
                repo_base=ctx.cfg.apt_repo_base,
                session=ctx.session,
                dry_run=ctx.dry_run,
            )
            install_enclave_package(
                version=ctx.cfg.version,
                enrolment_key=ctx.credential.reveal(),
                dry_run=ctx.dry_run,
            )
            # The package's post-install hook enrols and starts the service.
            record_decision(state, "delegated_to_package", True)
            return state

        packages = install_dependencies(host.os_family, host.package_manager, dry_run=ctx.dry_run)
        record_decision(state, "dependencies", packages)
        return state
