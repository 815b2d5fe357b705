from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import distro

from ..errors import UnsupportedPlatform

logger = logging.getLogger(__name__)


class OSFamily(str, Enum):
    DEBIAN = "debian"
    RHEL = "rhel"
    RHEL_LEGACY = "rhel-legacy"
    SUSE = "suse"
    ARCH = "arch"
    RASPBIAN = "raspbian"
    WINDOWS = "windows"
    UNSUPPORTED = "unsupported"


class Architecture(str, Enum):
    X64 = "x64"
    ARM = "arm"
    ARM64 = "arm64"


class PackageManagerKind(str, Enum):
    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    ZYPPER = "zypper"
    PACMAN = "pacman"
    MSI = "msi"


PACKAGE_MANAGER_BY_FAMILY: Dict[OSFamily, Optional[PackageManagerKind]] = {
    OSFamily.DEBIAN: PackageManagerKind.APT,
    OSFamily.RASPBIAN: PackageManagerKind.APT,
    OSFamily.RHEL: PackageManagerKind.DNF,
    OSFamily.RHEL_LEGACY: PackageManagerKind.YUM,
    OSFamily.SUSE: PackageManagerKind.ZYPPER,
    OSFamily.ARCH: PackageManagerKind.PACMAN,
    OSFamily.WINDOWS: PackageManagerKind.MSI,
    OSFamily.UNSUPPORTED: None,
}

_ARCH_MAP = {
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "x64": Architecture.X64,
    "armv7l": Architecture.ARM,
    "armv8l": Architecture.ARM,
    "arm8": Architecture.ARM,
    "arm": Architecture.ARM,
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,
}

_RHEL_IDS = {"rhel", "centos", "fedora", "rocky", "almalinux", "ol", "amzn"}
_ARCH_IDS = {"arch", "manjaro", "endeavouros"}


@dataclass(frozen=True)
class HostProfile:
    os_family: OSFamily
    architecture: Architecture
    package_manager: Optional[PackageManagerKind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "os_family": self.os_family.value,
            "architecture": self.architecture.value,
            "package_manager": self.package_manager.value if self.package_manager else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HostProfile":
        pm = data.get("package_manager")
        return cls(
            os_family=OSFamily(data["os_family"]),
            architecture=Architecture(data["architecture"]),
            package_manager=PackageManagerKind(pm) if pm else None,
        )


def normalize_arch(machine: str) -> Architecture:
    arch = _ARCH_MAP.get(machine.strip().lower())
    if arch is None:
        raise UnsupportedPlatform(f"Unsupported architecture: {machine}. Aborting.")
    return arch


def _major(version_id: str) -> Optional[int]:
    head = (version_id or "").split(".", 1)[0]
    return int(head) if head.isdigit() else None


def classify_os(os_id: str, id_like: str = "", version_id: str = "") -> OSFamily:
    """Map os-release ID / ID_LIKE / VERSION_ID to a single OS family."""

    os_id = (os_id or "").strip().lower()
    like = set((id_like or "").lower().split())

    if os_id == "raspbian":
        return OSFamily.RASPBIAN

    if os_id in {"debian", "ubuntu"} or like & {"debian", "ubuntu"}:
        return OSFamily.DEBIAN

    if os_id in _RHEL_IDS or like & {"rhel", "fedora", "centos"}:
        if os_id == "fedora":
            return OSFamily.RHEL
        major = _major(version_id)
        # Amazon Linux 2 and EL7 only ship yum.
        if major is not None and (major == 2 if os_id == "amzn" else major < 8):
            return OSFamily.RHEL_LEGACY
        return OSFamily.RHEL

    if "suse" in os_id or os_id == "sles" or "suse" in like:
        return OSFamily.SUSE

    if os_id in _ARCH_IDS or "arch" in like:
        return OSFamily.ARCH

    return OSFamily.UNSUPPORTED


def detect_host(arch_override: Optional[str] = None) -> HostProfile:
    if platform.system().lower() == "windows":
        family = OSFamily.WINDOWS
    else:
        family = classify_os(distro.id(), distro.like(), distro.version())

    arch = normalize_arch(arch_override or platform.machine())
    profile = HostProfile(
        os_family=family,
        architecture=arch,
        package_manager=PACKAGE_MANAGER_BY_FAMILY[family],
    )
    logger.info(
        "Host: os_family=%s arch=%s package_manager=%s",
        family.value,
        arch.value,
        profile.package_manager.value if profile.package_manager else None,
    )
    return profile
