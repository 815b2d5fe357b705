from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Optional

import requests

from ..errors import DownloadFailed
from .command import is_root, run_root

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 64
HTTP_TIMEOUT_S = 120


def download_to_temp(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    suffix: str = "",
    timeout: float = HTTP_TIMEOUT_S,
) -> str:
    """Stream url into a temporary file and return its path."""

    s = session or requests.Session()
    fd, tmp_path = tempfile.mkstemp(prefix="enclave-", suffix=suffix)
    logger.info("Downloading %s", url)
    try:
        with os.fdopen(fd, "wb") as out:
            with s.get(url, stream=True, timeout=timeout) as resp:
                resp.raise_for_status()
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        out.write(chunk)
    except (requests.RequestException, OSError) as e:
        Path(tmp_path).unlink(missing_ok=True)
        raise DownloadFailed(f"Failed to download {url}: {e}") from e

    if Path(tmp_path).stat().st_size == 0:
        Path(tmp_path).unlink(missing_ok=True)
        raise DownloadFailed(f"Downloaded artifact is empty: {url}")
    return tmp_path


def extract_binary(archive: str, dest: str, *, member: str = "enclave", dry_run: bool = False) -> None:
    """Extract a single member of a tar.gz to dest, owned root:root with mode 0755."""

    if dry_run:
        logger.info("Would extract %s from %s -> %s", member, archive, dest)
        return

    try:
        with tarfile.open(archive, "r:gz") as tar:
            candidates = [m for m in tar.getmembers() if m.isfile() and Path(m.name).name == member]
            if not candidates:
                raise DownloadFailed(f"{member} not found in {archive}")
            src = tar.extractfile(candidates[0])
            if src is None:
                raise DownloadFailed(f"Unable to read {member} from {archive}")
            staged = Path(tempfile.mkdtemp(prefix="enclave-")) / member
            with src, open(staged, "wb") as out:
                shutil.copyfileobj(src, out)
    except tarfile.TarError as e:
        raise DownloadFailed(f"Corrupt archive {archive}: {e}") from e

    try:
        if is_root():
            Path(dest).parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(staged), dest)
            os.chmod(dest, 0o755)
            if hasattr(os, "chown"):
                os.chown(dest, 0, 0)
        else:
            run_root(["install", "-o", "root", "-g", "root", "-m", "0755", str(staged), dest])
    finally:
        shutil.rmtree(staged.parent, ignore_errors=True)

    logger.info("Installed %s", dest)
