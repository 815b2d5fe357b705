from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Sequence

from .command import is_root, run_cmd, run_root

logger = logging.getLogger(__name__)


def write_root_file(path: str, contents: str, *, mode: int | None = None, dry_run: bool = False) -> None:
    """Write a file owned by root, going through ``sudo tee`` when unprivileged."""

    p = Path(path)
    if dry_run:
        logger.info("Would write %s", str(p))
        return

    if is_root():
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(contents, encoding="utf-8")
        if mode is not None:
            p.chmod(mode)
    else:
        run_root(["mkdir", "-p", str(p.parent)])
        run_cmd(["sudo", "tee", str(p)], input_text=contents)
        if mode is not None:
            run_root(["chmod", format(mode, "o"), str(p)])


def root_path_exists(path: str) -> bool:
    """True if path exists, even when it sits in a directory only root can read."""

    if is_root():
        return Path(path).exists()
    return run_root(["test", "-e", path], check=False).ok


def remove_paths(paths: Sequence[str], *, dry_run: bool = False) -> list[str]:
    """Delete files/directories; missing ones are skipped. Returns what was removed."""

    removed: list[str] = []
    for path in paths:
        if not path or not root_path_exists(path):
            continue
        if dry_run:
            logger.info("Would remove %s", path)
        elif is_root():
            p = Path(path)
            if p.is_dir() and not p.is_symlink():
                shutil.rmtree(p)
            else:
                p.unlink()
        else:
            run_root(["rm", "-rf", path])
        removed.append(path)
        logger.info("Removed %s", path)
    return removed
