from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import requests

from ..errors import DownloadFailed
from .command import run_root
from .files import write_root_file
from .hostdetect import PackageManagerKind
from .pkg import apt_update, install_packages

logger = logging.getLogger(__name__)

DEFAULT_APT_REPO_BASE = "https://packages.enclave.io/apt"
ENROLMENT_KEY_ENV = "ENCLAVE_ENROLMENT_KEY"


def _fetch(url: str, session: requests.Session, *, timeout: float = 30) -> bytes:
    logger.info("GET %s", url)
    try:
        resp = session.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise DownloadFailed(f"Unable to fetch {url}: {e}") from e
    if not resp.content:
        raise DownloadFailed(f"Empty response from {url}")
    return resp.content


def register_apt_repository(
    *,
    channel: str,
    keyring_path: str,
    sources_dir: str,
    repo_base: str = DEFAULT_APT_REPO_BASE,
    session: Optional[requests.Session] = None,
    dry_run: bool = False,
) -> str:
    """Trust the package signing key and add the source list for channel.

    Both files are overwritten on every run, so re-registering is harmless.
    Returns the path of the source list.
    """

    s = session or requests.Session()
    list_name = f"enclave.{channel}.list"
    list_path = str(Path(sources_dir) / list_name)

    install_packages(PackageManagerKind.APT, ["apt-transport-https", "ca-certificates"], dry_run=dry_run)

    logger.info("Adding Enclave GPG package signing key.")
    key = _fetch(f"{repo_base}/enclave.stable.gpg", s)
    if dry_run:
        logger.info("Would write %s", keyring_path)
    else:
        # Binary keyring: stage it and let install(1) place it with the right mode.
        fd, staged = tempfile.mkstemp(prefix="enclave-key-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(key)
            run_root(["install", "-D", "-m", "0644", staged, keyring_path])
        finally:
            Path(staged).unlink(missing_ok=True)

    logger.info("Adding the Enclave package repository.")
    sources = _fetch(f"{repo_base}/{list_name}", s).decode("utf-8")
    write_root_file(list_path, sources, mode=0o644, dry_run=dry_run)
    return list_path


def install_enclave_package(
    *,
    version: Optional[str] = None,
    enrolment_key: str = "",
    dry_run: bool = False,
) -> None:
    """Install the native package; its post-install hook enrols and starts the service."""

    apt_update(dry_run=dry_run)
    spec = f"enclave={version}" if version else "enclave"
    logger.info("Installing Enclave package (%s).", version or "latest")

    env = {ENROLMENT_KEY_ENV: enrolment_key} if enrolment_key else {}
    install_packages(
        PackageManagerKind.APT,
        [spec],
        env=env,
        preserve_env=[ENROLMENT_KEY_ENV, "DEBIAN_FRONTEND"] if env else ["DEBIAN_FRONTEND"],
        secrets=[enrolment_key] if enrolment_key else [],
        dry_run=dry_run,
    )
