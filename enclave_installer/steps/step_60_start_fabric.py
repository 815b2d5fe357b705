from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import FabricStartFailed
from ..lib.agent import EnclaveAgent
from ..pipeline import InstallCtx
from ..report import parse_status, print_quick_start
from ..state_store import add_warning, decision

logger = logging.getLogger(__name__)


class StartFabricStep:
    step_id = "60_start_fabric"

    def skip_reason(self, ctx: InstallCtx, state: Dict[str, Any]) -> Optional[str]:
        return None

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        agent = EnclaveAgent(ctx.paths.binary, dry_run=ctx.dry_run)

        if decision(state, "delegated_to_package"):
            logger.info("Fabric is started by the package; reporting status only.")
        else:
            logger.info("Starting Enclave Fabric.")
            if not agent.start_and_wait():
                raise FabricStartFailed("Failed to start Enclave fabric.")
            logger.info("Installation complete.")
            print_quick_start()

        status = None if ctx.dry_run else agent.status()
        if status is None and not ctx.dry_run:
            add_warning(state, "Unable to read enclave status.")

        report = parse_status(
            status,
            previous_version=decision(state, "previous_version"),
            new_version=decision(state, "installed_version"),
        )
        state["report"] = report.to_dict()
        return state
