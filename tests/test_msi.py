from pathlib import Path

import pytest

from enclave_installer.credential import EnrolmentCredential
from enclave_installer.errors import CommandFailed
from enclave_installer.lib.msi import install_msi

KEY = "MSI-ENROLMENT-KEY-12345"


def _writes_key_to_log(log_path):
    def effect(argv):
        Path(log_path).write_bytes(f"Property(S): ENROLMENT_KEY = {KEY}\r\n".encode("utf-16-le"))

    return effect


def test_log_is_scrubbed_after_failed_install(runner, tmp_path):
    log_path = tmp_path / "logs" / "msi.log"
    runner.on("msiexec.exe", returncode=1603, effect=_writes_key_to_log(log_path))

    with pytest.raises(CommandFailed, match="1603"):
        install_msi(str(tmp_path / "enclave.msi"), log_path=str(log_path), credential=EnrolmentCredential(KEY))

    assert KEY.encode("utf-16-le") not in log_path.read_bytes()


def test_reboot_required_is_success(runner, tmp_path):
    log_path = tmp_path / "msi.log"
    runner.on("msiexec.exe", returncode=3010, effect=_writes_key_to_log(log_path))

    install_msi(str(tmp_path / "enclave.msi"), log_path=str(log_path), credential=EnrolmentCredential(KEY))

    argv = runner.calls[0]
    assert argv[:2] == ["msiexec.exe", "/i"]
    assert "/qn" in argv
    assert f"ENROLMENT_KEY={KEY}" in argv
    assert KEY.encode("utf-16-le") not in log_path.read_bytes()


def test_no_key_no_property(runner, tmp_path):
    install_msi(str(tmp_path / "enclave.msi"), log_path=str(tmp_path / "msi.log"), credential=EnrolmentCredential())
    assert not any(a.startswith("ENROLMENT_KEY=") for a in runner.calls[0])
