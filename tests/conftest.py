import io
import os
import subprocess
import tarfile
from unittest.mock import MagicMock, Mock

import pytest

from enclave_installer.config import build_config
from enclave_installer.credential import EnrolmentCredential
from enclave_installer.lib import command
from enclave_installer.lib.env import Paths
from enclave_installer.logging_utils import reset_logging
from enclave_installer.pipeline import InstallCtx


def _contains(argv, seq):
    n = len(seq)
    return any(list(argv[i:i + n]) == list(seq) for i in range(len(argv) - n + 1))


class FakeRunner:
    """Stands in for subprocess.run; answers by matching a run of argv elements."""

    def __init__(self):
        self.calls = []
        self.envs = []
        self._rules = []

    def on(self, *seq, returncode=0, stdout="", stderr="", effect=None):
        # Later rules win.
        self._rules.insert(0, (seq, returncode, stdout, stderr, effect))

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(kwargs.get("env") or {})
        for seq, rc, out, err, effect in self._rules:
            if _contains(argv, seq):
                if effect is not None:
                    effect(argv)
                return subprocess.CompletedProcess(argv, rc, out, err)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def called(self, *seq):
        return any(_contains(argv, seq) for argv in self.calls)

    def index(self, *seq):
        for i, argv in enumerate(self.calls):
            if _contains(argv, seq):
                return i
        raise AssertionError(f"{seq} was never run")

    def env_for(self, *seq):
        return self.envs[self.index(*seq)]


@pytest.fixture(autouse=True)
def as_root(monkeypatch):
    """Run as if root, so no sudo prefix and files land directly under tmp_path."""
    monkeypatch.setattr(os, "geteuid", lambda: 0, raising=False)
    monkeypatch.setattr(os, "chown", lambda *a, **k: None, raising=False)


@pytest.fixture(autouse=True)
def clean_logging():
    yield
    reset_logging()


@pytest.fixture
def runner(monkeypatch):
    fake = FakeRunner()
    monkeypatch.setattr(command.subprocess, "run", fake)
    return fake


@pytest.fixture
def paths(tmp_path):
    root = tmp_path / "root"
    return Paths(
        binary=str(root / "usr/bin/enclave"),
        unit=str(root / "usr/lib/systemd/system/enclave.service"),
        user_auth_unit=str(root / "usr/lib/systemd/user/enclave-auth.service"),
        config_dir=str(root / "etc/enclave"),
        identity=str(root / "etc/enclave/profiles/Universe.profile"),
        bundle_extract_dir=str(root / "var/tmp/.net/enclave"),
        apt_sources_dir=str(root / "etc/apt/sources.list.d"),
        apt_keyring=str(root / "etc/apt/trusted.gpg.d/enclave.gpg"),
        state_default=str(tmp_path / "state.json"),
        log_default=str(tmp_path / "installer.log"),
        msi_log=str(tmp_path / "msi.log"),
    )


@pytest.fixture
def make_ctx(paths):
    def _make(key=None, session=None, **overrides):
        cfg = build_config(overrides=overrides, environ={})
        return InstallCtx(
            cfg=cfg,
            credential=EnrolmentCredential(key),
            paths=paths,
            session=session if session is not None else Mock(),
        )

    return _make


@pytest.fixture
def tarball():
    def _make(payload=b"#!/bin/sh\necho enclave\n", name="enclave"):
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tar:
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            tar.addfile(info, io.BytesIO(payload))
        return buf.getvalue()

    return _make


@pytest.fixture
def streaming_session():
    """A session whose get() streams data, the way download_to_temp reads it."""

    def _make(data):
        resp = MagicMock()
        resp.__enter__.return_value = resp
        resp.iter_content.return_value = [data]
        session = Mock()
        session.get.return_value = resp
        return session

    return _make
