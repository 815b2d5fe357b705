import io
from pathlib import Path

import pytest

from enclave_installer.errors import RemovalNotConfirmed
from enclave_installer.lib.hostdetect import Architecture, HostProfile, OSFamily, PackageManagerKind
from enclave_installer.remove import confirm_removal, remove_agent

DEBIAN = HostProfile(OSFamily.DEBIAN, Architecture.X64, PackageManagerKind.APT)
ARCH = HostProfile(OSFamily.ARCH, Architecture.X64, PackageManagerKind.PACMAN)


class TestConfirmRemoval:
    def test_yes_flag_needs_no_prompt(self):
        confirm_removal(yes=True, prompt=lambda _: pytest.fail("prompted"))

    def test_interactive_yes(self):
        confirm_removal(yes=False, prompt=lambda _: " YES\n")

    def test_anything_else_cancels(self):
        with pytest.raises(RemovalNotConfirmed, match="cancelled"):
            confirm_removal(yes=False, prompt=lambda _: "y")

    def test_unattended_without_yes_refuses(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        with pytest.raises(RemovalNotConfirmed, match="--yes"):
            confirm_removal(yes=False)


@pytest.fixture
def installed(paths):
    for f in (paths.binary, paths.unit, paths.user_auth_unit, paths.identity):
        Path(f).parent.mkdir(parents=True, exist_ok=True)
        Path(f).write_text("x")
    Path(paths.bundle_extract_dir).mkdir(parents=True)
    return paths


def test_manual_install_is_removed_even_when_services_are_stopped(make_ctx, runner, installed):
    runner.on("disable", returncode=1)
    runner.on("pacman", "-Q", returncode=1)

    summary = remove_agent(make_ctx(), ARCH)

    assert runner.called("systemctl", "disable", "--now", "enclave")
    assert runner.called("systemctl", "--global", "disable", "enclave-auth")
    assert not runner.called("pacman", "-Rns")
    assert summary["services_disabled"] == {"enclave": False, "enclave-auth": False}
    for p in (installed.binary, installed.unit, installed.user_auth_unit, installed.config_dir, installed.bundle_extract_dir):
        assert not Path(p).exists()
    assert runner.called("systemctl", "daemon-reload")


def test_packaged_install_is_purged(make_ctx, runner, installed):
    summary = remove_agent(make_ctx(), DEBIAN)

    assert runner.called("apt-get", "purge", "-yq", "enclave")
    assert summary["removed_by_package_manager"] is True
    assert installed.config_dir in summary["removed_paths"]


def test_removal_on_a_clean_host_is_harmless(make_ctx, runner):
    runner.on("dpkg", returncode=1)

    summary = remove_agent(make_ctx(), DEBIAN)

    assert summary["removed_paths"] == []
    assert summary["removed_by_package_manager"] is False


def test_dry_run_removes_nothing(make_ctx, runner, installed):
    summary = remove_agent(make_ctx(dry_run=True), DEBIAN)

    assert Path(installed.binary).exists()
    assert installed.binary in summary["removed_paths"]
    assert not runner.called("apt-get", "purge")
