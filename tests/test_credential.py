import logging

import pytest

from enclave_installer.credential import EnrolmentCredential
from enclave_installer.lib.command import MASK
from enclave_installer.logging_utils import configure_logging

KEY = "AAAAA-BBBBB-CCCCC-DDDDD-EEEEE"


def test_repr_and_str_never_show_the_key():
    cred = EnrolmentCredential(KEY)
    assert KEY not in repr(cred)
    assert KEY not in str(cred)
    assert MASK in repr(cred)
    assert cred.reveal() == KEY


def test_empty_credential_is_falsy():
    assert not EnrolmentCredential()
    assert not EnrolmentCredential("   ")
    assert EnrolmentCredential().secrets() == ()


def test_redact_text():
    cred = EnrolmentCredential(KEY)
    assert cred.redact(f"enclave enrol {KEY}") == f"enclave enrol {MASK}"


class TestRedactFile:
    def test_utf8_and_utf16_occurrences_are_scrubbed(self, tmp_path):
        log = tmp_path / "msi.log"
        log.write_bytes(
            f"Property(S): ENROLMENT_KEY = {KEY}\n".encode("utf-8")
            + f"Property(C): ENROLMENT_KEY = {KEY}\r\n".encode("utf-16-le")
        )
        cred = EnrolmentCredential(KEY)

        assert cred.redact_file(str(log)) is True

        raw = log.read_bytes()
        assert KEY.encode("utf-8") not in raw
        assert KEY.encode("utf-16-le") not in raw
        assert MASK.encode("utf-8") in raw
        assert MASK.encode("utf-16-le") in raw

    def test_clean_file_is_left_alone(self, tmp_path):
        log = tmp_path / "clean.log"
        log.write_text("nothing to see\n")
        assert EnrolmentCredential(KEY).redact_file(str(log)) is False

    def test_missing_file_or_no_key(self, tmp_path):
        assert EnrolmentCredential(KEY).redact_file(str(tmp_path / "missing.log")) is False
        log = tmp_path / "x.log"
        log.write_text(KEY)
        assert EnrolmentCredential().redact_file(str(log)) is False
        assert log.read_text() == KEY


class TestLogging:
    def test_key_is_redacted_in_log_file(self, tmp_path):
        log_path = tmp_path / "installer.log"
        cred = EnrolmentCredential(KEY)
        actual = configure_logging(log_path=str(log_path), also_console=False, credential=cred)

        logging.getLogger("enclave_installer.test").info("enrolling with %s", KEY)

        assert actual == str(log_path)
        text = log_path.read_text()
        assert KEY not in text
        assert f"enrolling with {MASK}" in text

    def test_falls_back_to_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        actual = configure_logging(log_path=str(blocker / "installer.log"), also_console=False)

        assert actual == str(tmp_path / "enclave-installer.log")

    def test_configure_twice_keeps_one_file_handler(self, tmp_path):
        first = configure_logging(log_path=str(tmp_path / "a.log"), also_console=False)
        second = configure_logging(log_path=str(tmp_path / "b.log"), also_console=False)
        assert first == second == str(tmp_path / "a.log")
        assert len(getattr(logging.getLogger(), "_enclave_handlers")) == 1


@pytest.mark.parametrize("value", [None, ""])
def test_no_key_means_no_secrets(value):
    assert EnrolmentCredential(value).redact("text") == "text"
