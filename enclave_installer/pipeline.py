from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from .config import InstallerConfig
from .credential import EnrolmentCredential
from .lib.env import PATHS, Paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallCtx:
    """Everything a step needs that must not live in the persisted state."""

    cfg: InstallerConfig
    credential: EnrolmentCredential = field(default_factory=EnrolmentCredential)
    paths: Paths = PATHS
    session: requests.Session = field(default_factory=requests.Session)

    @property
    def dry_run(self) -> bool:
        return self.cfg.dry_run


class Step(Protocol):
    """A single idempotent step."""

    step_id: str

    def skip_reason(self, ctx: InstallCtx, state: Dict[str, Any]) -> Optional[str]:
        ...

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    ctx: InstallCtx,
    state: Dict[str, Any],
    steps: Sequence[Step],
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order; each step decides from the live system whether it has work."""

    ran: List[str] = []
    skipped: List[str] = []

    for step in steps:
        state.setdefault("execution", {})["current_step"] = step.step_id

        reason = step.skip_reason(ctx, state)
        if reason:
            logger.info("Skipping step %s (%s)", step.step_id, reason)
            skipped.append(step.step_id)
        else:
            logger.info("Running step %s", step.step_id)
            state = step.run(ctx, state)
            ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
