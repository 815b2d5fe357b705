from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..lib.hostdetect import HostProfile, OSFamily
from ..lib.release import ReleaseClient, resolve_release
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


class ResolveReleaseStep:
    step_id = "20_resolve_release"

    def skip_reason(self, ctx: InstallCtx, state: Dict[str, Any]) -> Optional[str]:
        host = HostProfile.from_dict(state["host"])
        if host.os_family == OSFamily.DEBIAN:
            return "package repository selects the release"
        return None

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = HostProfile.from_dict(state["host"])
        windows = host.os_family == OSFamily.WINDOWS
        client = ReleaseClient(
            manifest_url=ctx.cfg.manifest_url(windows=windows),
            latest_version_url=ctx.cfg.latest_version_url,
            session=ctx.session,
        )
        release = resolve_release(
            ctx.cfg.channel,
            ctx.cfg.version,
            client=client,
            os_family=host.os_family,
            template=ctx.cfg.artifact_url_template,
        )
        state["release"] = release.to_dict()
        return state
