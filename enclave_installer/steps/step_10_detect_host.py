from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..lib.hostdetect import OSFamily, detect_host
from ..pipeline import InstallCtx
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class DetectHostStep:
    step_id = "10_detect_host"

    def skip_reason(self, ctx: InstallCtx, state: Dict[str, Any]) -> Optional[str]:
        return None

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        profile = detect_host(arch_override=ctx.cfg.arch)
        state["host"] = profile.to_dict()

        if profile.os_family == OSFamily.UNSUPPORTED:
            add_warning(state, "Unsupported distro detected. Some dependencies may not be present.")
        return state
