from __future__ import annotations

import argparse
import logging
import os
import platform
import sys
from typing import Any, Dict, Optional

import requests

from .config import InstallerConfig, build_config
from .credential import EnrolmentCredential
from .errors import InstallerError, UnsupportedPlatform
from .lib.env import PATHS, WINDOWS_PATHS, Paths
from .lib.hostdetect import OSFamily, detect_host
from .logging_utils import configure_logging, reset_logging
from .pipeline import InstallCtx, run_pipeline
from .remove import confirm_removal, remove_agent
from .report import StatusReport, print_report
from .state_store import load_state, new_run_state, save_state
from .steps import (
    DetectHostStep,
    EnrolStep,
    InstallAgentStep,
    InstallDependenciesStep,
    ResolveReleaseStep,
    StartFabricStep,
)

logger = logging.getLogger(__name__)

ENROLMENT_KEY_ENV = "ENCLAVE_ENROLMENT_KEY"


def default_paths() -> Paths:
    return WINDOWS_PATHS if platform.system().lower() == "windows" else PATHS


def build_steps():
    return [
        DetectHostStep(),
        ResolveReleaseStep(),
        InstallDependenciesStep(),
        InstallAgentStep(),
        EnrolStep(),
        StartFabricStep(),
    ]


def run(
    *,
    cfg: InstallerConfig,
    credential: Optional[EnrolmentCredential] = None,
    paths: Optional[Paths] = None,
    state_path: Optional[str] = None,
    log_path: Optional[str] = None,
    session: Optional[requests.Session] = None,
    stop_after: Optional[str] = None,
) -> Dict[str, Any]:
    """Reconcile this host to installed + enrolled + running and return the run state."""

    credential = credential or EnrolmentCredential()
    paths = paths or default_paths()
    state_path = state_path or paths.state_default
    actual_log_path = configure_logging(log_path=log_path or paths.log_default, credential=credential)

    try:
        previous = load_state(state_path)
    except (OSError, ValueError) as e:
        # Previous state is informational only; a damaged file is replaced on save.
        logger.warning("Ignoring unreadable installer state %s: %s", state_path, e)
        previous = {}
    state = new_run_state(previous)
    state["execution"]["log_path"] = actual_log_path

    ctx = InstallCtx(
        cfg=cfg,
        credential=credential,
        paths=paths,
        session=session or requests.Session(),
    )

    try:
        result = run_pipeline(ctx=ctx, state=state, steps=build_steps(), stop_after=stop_after)
        state = result.state
        state["execution"]["ran_steps"] = result.ran_steps
        state["execution"]["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        logger.exception("Installer failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": credential.redact(str(e)),
            }
        )
        raise
    finally:
        try:
            save_state(state_path, state)
        except OSError as e:
            logger.warning("Unable to save installer state to %s: %s", state_path, e)
        reset_logging()
        credential.redact_file(actual_log_path)


def remove(
    *,
    cfg: InstallerConfig,
    yes: bool,
    paths: Optional[Paths] = None,
    log_path: Optional[str] = None,
) -> Dict[str, Any]:
    paths = paths or default_paths()
    configure_logging(log_path=log_path or paths.log_default)
    try:
        host = detect_host(arch_override=cfg.arch)
        if host.os_family == OSFamily.WINDOWS:
            raise UnsupportedPlatform("Removal is only supported on Linux; use Programs and Features.")
        confirm_removal(yes=yes)
        return remove_agent(InstallCtx(cfg=cfg, paths=paths), host)
    except InstallerError as e:
        logger.error("Removal aborted: %s", e)
        raise
    finally:
        reset_logging()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="enclave-installer",
        description="Install, upgrade, enrol or remove the Enclave agent on this host.",
    )
    p.add_argument("-a", "--arch", default=None, help="Architecture (x64/arm/arm64); detected if omitted")
    p.add_argument("-v", "--version", default=None, help="Version to install; latest if omitted")
    p.add_argument(
        "-e",
        "--enrolment-key",
        default=None,
        help=f"Enrolment key (prefer the {ENROLMENT_KEY_ENV} environment variable)",
    )
    p.add_argument("-u", "--unstable", action="store_true", help="Use the unstable release channel")
    p.add_argument("--remove", action="store_true", help="Remove Enclave from this host")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask before destructive operations")
    p.add_argument("--force", action="store_true", help="Reinstall even if the version is already installed")
    p.add_argument("--dry-run", action="store_true", help="Log what would change without changing it")
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument("--state", default=None, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=None, help="Path to installer log")
    p.add_argument("--ready-timeout", type=float, default=None, help="Seconds to wait for the service to answer")
    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    try:
        cfg = build_config(
            config_path=args.config,
            overrides={
                "arch": args.arch,
                "version": args.version,
                "channel": "unstable" if args.unstable else None,
                "dry_run": True if args.dry_run else None,
                "force": True if args.force else None,
                "ready_timeout_s": args.ready_timeout,
            },
        )

        if args.remove:
            remove(cfg=cfg, yes=args.yes, log_path=args.log)
            return 0

        credential = EnrolmentCredential(args.enrolment_key or os.environ.get(ENROLMENT_KEY_ENV))
        state = run(cfg=cfg, credential=credential, state_path=args.state, log_path=args.log)
    except InstallerError as e:
        sys.stderr.write(f"\033[31m[!] {e}\033[0m\n")
        return 1

    print_report(StatusReport(**(state.get("report") or {})))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
