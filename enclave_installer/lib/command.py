from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from ..errors import CommandFailed

logger = logging.getLogger(__name__)

MASK = "********"


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _mask(text: str, secrets: Iterable[str]) -> str:
    for s in secrets:
        if s:
            text = text.replace(s, MASK)
    return text


def _fmt_argv(argv: Sequence[str], secrets: Iterable[str] = ()) -> str:
    return _mask(" ".join(shlex.quote(a) for a in argv), list(secrets))


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    # Windows has no euid; the installer there is expected to run elevated.
    return geteuid is None or geteuid() == 0


def as_root(argv: Sequence[str], *, preserve_env: Sequence[str] = ()) -> list[str]:
    """Prefix argv with sudo when the installer itself is not root."""

    if is_root():
        return list(argv)
    prefix = ["sudo"]
    if preserve_env:
        prefix.append("--preserve-env=" + ",".join(preserve_env))
    return [*prefix, *argv]


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
    secrets: Sequence[str] = (),
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command, with any value in ``secrets`` masked.
    - Captures stdout/stderr; both are masked the same way before they are
      logged or returned.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list, secrets))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError as e:
        if check:
            raise CommandFailed(f"Command not found: {argv_list[0]}") from e
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

    stdout = _mask(p.stdout or "", secrets)
    stderr = _mask(p.stderr or "", secrets)

    if stdout:
        logger.debug("STDOUT %s", stdout.strip())
    if stderr:
        logger.debug("STDERR %s", stderr.strip())

    if check and p.returncode != 0:
        raise CommandFailed(
            f"Command failed ({p.returncode}): {_fmt_argv(argv_list, secrets)}\n{stderr}"
        )

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=stdout, stderr=stderr)


def run_root(argv: Sequence[str], **kwargs) -> CmdResult:
    preserve_env = kwargs.pop("preserve_env", ())
    return run_cmd(as_root(argv, preserve_env=preserve_env), **kwargs)
