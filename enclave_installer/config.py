from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .lib.apt_repo import DEFAULT_APT_REPO_BASE
from .lib.release import (
    DEFAULT_ARTIFACT_URL_TEMPLATE,
    DEFAULT_LATEST_VERSION_URL,
    DEFAULT_WINDOWS_MANIFEST_URL,
    Channel,
)

# Environment variables that override the config file (CLI flags override both).
ENV_OVERRIDES = {
    "ENCLAVE_VERSION": "version",
    "ENCLAVE_ARCH": "arch",
    "ENCLAVE_CHANNEL": "channel",
}


@dataclass(frozen=True)
class InstallerConfig:
    raw: Dict[str, Any]

    @property
    def channel(self) -> Channel:
        return Channel(str(self.raw.get("channel") or "stable").lower())

    @property
    def version(self) -> Optional[str]:
        v = self.raw.get("version")
        return str(v).strip() if v else None

    @property
    def arch(self) -> Optional[str]:
        a = self.raw.get("arch")
        return str(a).strip() if a else None

    def manifest_url(self, *, windows: bool = False) -> Optional[str]:
        release = self.raw.get("release") or {}
        if "manifest_url" in release:
            # An explicit empty value selects the plain-text latest version endpoint.
            return release.get("manifest_url") or None
        # Linux releases are looked up through the latest version endpoint.
        return DEFAULT_WINDOWS_MANIFEST_URL if windows else None

    @property
    def latest_version_url(self) -> str:
        return str((self.raw.get("release") or {}).get("latest_version_url") or DEFAULT_LATEST_VERSION_URL)

    @property
    def artifact_url_template(self) -> str:
        return str((self.raw.get("release") or {}).get("artifact_url_template") or DEFAULT_ARTIFACT_URL_TEMPLATE)

    @property
    def apt_repo_base(self) -> str:
        return str((self.raw.get("apt") or {}).get("repo_base") or DEFAULT_APT_REPO_BASE)

    @property
    def ready_timeout_s(self) -> float:
        return float((self.raw.get("readiness") or {}).get("timeout_s", 30))

    @property
    def ready_interval_s(self) -> float:
        return float((self.raw.get("readiness") or {}).get("interval_s", 1))

    @property
    def dry_run(self) -> bool:
        return bool(self.raw.get("dry_run", False))

    @property
    def force(self) -> bool:
        return bool(self.raw.get("force", False))


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Config file not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError(f"Installer config must be YAML (.yaml/.yml): {path}")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError("PyYAML is required to read the installer config") from e

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Unable to read config {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("Installer config must contain a mapping/object")
    return raw


def build_config(
    *,
    config_path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InstallerConfig:
    """Layer config file < environment < CLI overrides (None means 'not given').

    Raises ConfigError before anything runs if the result is unusable.
    """

    raw = load_config_file(config_path)
    env = os.environ if environ is None else environ

    for var, key in ENV_OVERRIDES.items():
        if env.get(var):
            raw[key] = env[var]

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key == "ready_timeout_s":
            raw.setdefault("readiness", {})["timeout_s"] = value
        else:
            raw[key] = value

    cfg = InstallerConfig(raw=raw)
    try:
        _ = cfg.channel
    except ValueError as e:
        choices = ", ".join(c.value for c in Channel)
        raise ConfigError(f"Unknown channel {raw.get('channel')!r} (expected one of: {choices})") from e
    try:
        _ = (cfg.ready_timeout_s, cfg.ready_interval_s)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Readiness timings must be numbers: {e}") from e
    return cfg
