from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import EnrollmentFailed
from ..lib import systemd
from ..lib.agent import EnclaveAgent
from ..lib.env import SERVICE_NAME
from ..lib.files import root_path_exists
from ..pipeline import InstallCtx
from ..state_store import add_warning, decision, record_decision

logger = logging.getLogger(__name__)


class EnrolStep:
    step_id = "50_enrol"

    def skip_reason(self, ctx: InstallCtx, state: Dict[str, Any]) -> Optional[str]:
        if decision(state, "delegated_to_package"):
            return "enrolment handled by the package"
        return None

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        identity = ctx.paths.identity

        if root_path_exists(identity):
            # An existing identity is authoritative; never re-enrol over it.
            logger.info("Existing identity %s detected.", identity)
            if not systemd.start(SERVICE_NAME, dry_run=ctx.dry_run):
                add_warning(state, "Failed to start the Enclave service.")
            record_decision(state, "enrolment", "existing_identity")
            return state

        if not ctx.credential:
            add_warning(state, "No enrolment key supplied.")
            add_warning(
                state,
                "Enclave requires an enrolment key in order to request a certificate "
                "and enrol this system into your account.",
            )

        agent = EnclaveAgent(ctx.paths.binary, dry_run=ctx.dry_run)
        if agent.enrol(ctx.credential):
            record_decision(state, "enrolment", "enrolled")
            return state

        if ctx.credential:
            raise EnrollmentFailed("Failed to enrol system.")

        add_warning(state, "System not enrolled; enrol it later with `enclave enrol`.")
        record_decision(state, "enrolment", "pending")
        return state
