from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence

from .command import CmdResult, run_root
from .hostdetect import OSFamily, PackageManagerKind

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}

# Runtime libraries the self-contained binary needs, per family.
DEPENDENCIES_BY_FAMILY: Dict[OSFamily, List[str]] = {
    OSFamily.DEBIAN: [],
    OSFamily.RASPBIAN: ["libsodium-dev"],
    OSFamily.RHEL: ["libicu"],
    OSFamily.RHEL_LEGACY: ["libicu"],
    OSFamily.SUSE: ["libicu", "iptables"],
    OSFamily.ARCH: ["icu", "libsodium"],
    OSFamily.WINDOWS: [],
    OSFamily.UNSUPPORTED: [],
}

_INSTALL_ARGV: Dict[PackageManagerKind, List[str]] = {
    PackageManagerKind.APT: ["apt-get", "install", "-yq"],
    PackageManagerKind.DNF: ["dnf", "install", "-y"],
    PackageManagerKind.YUM: ["yum", "install", "-y"],
    PackageManagerKind.ZYPPER: ["zypper", "--non-interactive", "install"],
    PackageManagerKind.PACMAN: ["pacman", "-Syq", "--noconfirm", "--needed"],
}

_REMOVE_ARGV: Dict[PackageManagerKind, List[str]] = {
    PackageManagerKind.APT: ["apt-get", "purge", "-yq"],
    PackageManagerKind.DNF: ["dnf", "remove", "-y"],
    PackageManagerKind.YUM: ["yum", "remove", "-y"],
    PackageManagerKind.ZYPPER: ["zypper", "--non-interactive", "remove"],
    PackageManagerKind.PACMAN: ["pacman", "-Rns", "--noconfirm"],
}

_QUERY_ARGV: Dict[PackageManagerKind, List[str]] = {
    PackageManagerKind.APT: ["dpkg", "-s"],
    PackageManagerKind.DNF: ["rpm", "-q"],
    PackageManagerKind.YUM: ["rpm", "-q"],
    PackageManagerKind.ZYPPER: ["rpm", "-q"],
    PackageManagerKind.PACMAN: ["pacman", "-Q"],
}


def apt_update(*, dry_run: bool = False) -> None:
    run_root(["apt-get", "update", "-qq"], env=_APT_ENV, dry_run=dry_run)


def apt_find_icu(*, dry_run: bool = False) -> Optional[str]:
    """Return the libicuNN package this release ships (names vary by release)."""

    if dry_run:
        return None
    r = run_root(["apt-cache", "search", "-n", "^libicu[0-9]+$"], check=False)
    names = sorted(
        {ln.split(" ", 1)[0] for ln in r.stdout.splitlines() if ln.strip()},
        key=lambda n: int(re.sub(r"\D", "", n) or 0),
    )
    return names[-1] if names else None


def install_packages(
    kind: PackageManagerKind,
    packages: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    preserve_env: Sequence[str] = (),
    secrets: Sequence[str] = (),
    dry_run: bool = False,
) -> CmdResult | None:
    if not packages:
        return None
    argv = _INSTALL_ARGV.get(kind)
    if argv is None:
        raise ValueError(f"No package install command for {kind.value}")
    merged_env = dict(_APT_ENV) if kind == PackageManagerKind.APT else {}
    merged_env.update(env or {})
    return run_root(
        [*argv, *packages],
        env=merged_env,
        preserve_env=preserve_env,
        secrets=secrets,
        dry_run=dry_run,
    )


def remove_packages(kind: PackageManagerKind, packages: Sequence[str], *, dry_run: bool = False) -> None:
    argv = _REMOVE_ARGV.get(kind)
    if argv is None:
        raise ValueError(f"No package remove command for {kind.value}")
    run_root([*argv, *packages], dry_run=dry_run)


def package_installed(kind: Optional[PackageManagerKind], package: str) -> bool:
    argv = _QUERY_ARGV.get(kind) if kind else None
    if argv is None:
        return False
    return run_root([*argv, package], check=False).ok


def install_dependencies(family: OSFamily, kind: Optional[PackageManagerKind], *, dry_run: bool = False) -> List[str]:
    """Install the runtime libraries for a manual (non-package) install."""

    packages = list(DEPENDENCIES_BY_FAMILY[family])
    if kind is None or not packages:
        return []

    if family == OSFamily.RASPBIAN:
        apt_update(dry_run=dry_run)
        # Different Raspbian releases ship different libicu versions.
        icu = apt_find_icu(dry_run=dry_run)
        if icu:
            packages.insert(0, icu)
        else:
            logger.warning("No libicu package found in apt cache")

    install_packages(kind, packages, dry_run=dry_run)
    logger.info("Dependencies installed: %s", ", ".join(packages))
    return packages
