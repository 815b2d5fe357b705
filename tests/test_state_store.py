import pytest

from enclave_installer.state_store import (
    STATE_VERSION,
    add_warning,
    decision,
    load_state,
    new_run_state,
    record_decision,
    save_state,
)


@pytest.mark.parametrize("name", ["state.json", "state.yaml"])
def test_save_and_load(tmp_path, name):
    path = tmp_path / "nested" / name
    state = new_run_state({})
    record_decision(state, "installed_version", "2023.5.1")

    save_state(str(path), state)

    loaded = load_state(str(path))
    assert loaded["version"] == STATE_VERSION
    assert decision(loaded, "installed_version") == "2023.5.1"


def test_missing_state_is_empty(tmp_path):
    assert load_state(str(tmp_path / "missing.json")) == {}


def test_non_mapping_state_is_rejected(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_state(str(path))


def test_new_run_does_not_inherit_decisions():
    previous = new_run_state({})
    record_decision(previous, "nothing_to_do", True)
    previous["report"] = {"virtual_address": "100.64.0.1"}
    previous["execution"]["errors"].append({"step": "50_enrol", "error": "boom"})

    state = new_run_state(previous)

    assert decision(state, "nothing_to_do") is None
    assert state["previous_run"]["report"] == {"virtual_address": "100.64.0.1"}
    assert state["previous_run"]["errors"] == [{"step": "50_enrol", "error": "boom"}]
    assert state["execution"]["warnings"] == []


def test_add_warning_logs_and_records(caplog):
    state = new_run_state({})
    add_warning(state, "No enrolment key supplied.")
    assert state["execution"]["warnings"] == ["No enrolment key supplied."]
    assert "No enrolment key supplied." in caplog.text


@pytest.mark.parametrize("name,content", [("state.json", "{truncated"), ("state.yml", "errors: [unclosed\n")])
def test_damaged_state_is_a_value_error(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    with pytest.raises(ValueError):
        load_state(str(path))
