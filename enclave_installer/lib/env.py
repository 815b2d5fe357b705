from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    binary: str = "/usr/bin/enclave"
    unit: str = "/usr/lib/systemd/system/enclave.service"
    user_auth_unit: str = "/usr/lib/systemd/user/enclave-auth.service"
    config_dir: str = "/etc/enclave"
    identity: str = "/etc/enclave/profiles/Universe.profile"
    bundle_extract_dir: str = "/var/tmp/.net/enclave"
    apt_sources_dir: str = "/etc/apt/sources.list.d"
    apt_keyring: str = "/etc/apt/trusted.gpg.d/enclave.gpg"
    state_default: str = "/var/lib/enclave-installer/state.json"
    log_default: str = "/var/log/enclave-installer.log"
    msi_log: str = ""


SERVICE_NAME = "enclave"
USER_AUTH_SERVICE_NAME = "enclave-auth"
PACKAGE_NAME = "enclave"

PATHS = Paths()

WINDOWS_PATHS = Paths(
    binary=r"C:\Program Files\Enclave Networks\Enclave\Agent\enclave.exe",
    unit="",
    user_auth_unit="",
    config_dir=r"C:\Windows\System32\config\systemprofile\AppData\Roaming\Enclave",
    identity=r"C:\Windows\System32\config\systemprofile\AppData\Roaming\Enclave\profiles\Universe.profile",
    bundle_extract_dir="",
    apt_sources_dir="",
    apt_keyring="",
    state_default=r"C:\ProgramData\Enclave\installer\state.json",
    log_default=r"C:\ProgramData\Enclave\installer\enclave-installer.log",
    msi_log=r"C:\ProgramData\Enclave\installer\enclave-msi.log",
)
