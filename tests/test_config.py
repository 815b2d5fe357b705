import pytest

from enclave_installer.config import build_config
from enclave_installer.errors import ConfigError
from enclave_installer.lib.release import DEFAULT_WINDOWS_MANIFEST_URL, Channel


def test_defaults():
    cfg = build_config(environ={})
    assert cfg.channel == Channel.STABLE
    assert cfg.version is None
    assert cfg.arch is None
    assert cfg.manifest_url() is None
    assert cfg.manifest_url(windows=True) == DEFAULT_WINDOWS_MANIFEST_URL
    assert cfg.ready_timeout_s == 30.0
    assert not cfg.dry_run
    assert not cfg.force


def test_file_then_environment_then_cli(tmp_path):
    cfg_file = tmp_path / "installer.yaml"
    cfg_file.write_text("version: '2023.1.1'\narch: x64\nchannel: stable\n")
    env = {"ENCLAVE_VERSION": "2023.2.2", "ENCLAVE_CHANNEL": "unstable"}

    from_file = build_config(config_path=str(cfg_file), environ={})
    assert from_file.version == "2023.1.1"

    from_env = build_config(config_path=str(cfg_file), environ=env)
    assert from_env.version == "2023.2.2"
    assert from_env.channel == Channel.UNSTABLE
    assert from_env.arch == "x64"

    from_cli = build_config(
        config_path=str(cfg_file),
        environ=env,
        overrides={"version": "2023.3.3", "arch": None, "channel": None},
    )
    assert from_cli.version == "2023.3.3"
    assert from_cli.arch == "x64"
    assert from_cli.channel == Channel.UNSTABLE


def test_empty_manifest_url_selects_latest_version_endpoint(tmp_path):
    cfg_file = tmp_path / "installer.yml"
    cfg_file.write_text("release:\n  manifest_url: ''\n  latest_version_url: https://example.test/latest\n")

    cfg = build_config(config_path=str(cfg_file), environ={})

    assert cfg.manifest_url() is None
    assert cfg.latest_version_url == "https://example.test/latest"


def test_ready_timeout_override():
    cfg = build_config(overrides={"ready_timeout_s": 5}, environ={})
    assert cfg.ready_timeout_s == 5.0
    assert cfg.ready_interval_s == 1.0


def test_unknown_channel_is_rejected():
    with pytest.raises(ConfigError, match="nightly"):
        build_config(overrides={"channel": "nightly"}, environ={})


def test_config_must_be_yaml(tmp_path):
    cfg_file = tmp_path / "installer.json"
    cfg_file.write_text("{}")
    with pytest.raises(ConfigError, match="YAML"):
        build_config(config_path=str(cfg_file), environ={})


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        build_config(config_path=str(tmp_path / "nope.yaml"), environ={})


def test_unknown_channel_from_environment_is_rejected():
    with pytest.raises(ConfigError, match="beta"):
        build_config(environ={"ENCLAVE_CHANNEL": "beta"})


def test_config_must_be_a_mapping(tmp_path):
    cfg_file = tmp_path / "installer.yaml"
    cfg_file.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError, match="mapping"):
        build_config(config_path=str(cfg_file), environ={})


def test_malformed_yaml(tmp_path):
    cfg_file = tmp_path / "installer.yaml"
    cfg_file.write_text("channel: [unclosed\n")
    with pytest.raises(ConfigError, match="Unable to read config"):
        build_config(config_path=str(cfg_file), environ={})


def test_readiness_timeout_must_be_numeric(tmp_path):
    cfg_file = tmp_path / "installer.yaml"
    cfg_file.write_text("readiness:\n  timeout_s: soon\n")
    with pytest.raises(ConfigError, match="numbers"):
        build_config(config_path=str(cfg_file), environ={})
