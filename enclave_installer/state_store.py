from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

STATE_VERSION = 1

# Anything else is stored as JSON.
_YAML_SUFFIXES = {".yaml", ".yml"}


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in _YAML_SUFFIXES


def _yaml():
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError(
            "YAML state requested but PyYAML is not available. Use a .json state path."
        ) from e
    return yaml


def load_state(path: str) -> Dict[str, Any]:
    """Read a previous run's state; ValueError if the file is not a readable mapping."""

    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    if _is_yaml(p):
        yaml = _yaml()
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"State file {p} is not valid YAML: {e}") from e
    else:
        data = json.loads(text)

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _is_yaml(p):
        p.write_text(_yaml().safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def new_run_state(previous: Dict[str, Any]) -> Dict[str, Any]:
    """Fresh per-run state; the previous run is kept only for reference.

    Nothing from a previous run is trusted for decisions: every step re-reads
    the real system.
    """

    state: Dict[str, Any] = {"version": STATE_VERSION}
    if previous:
        state["previous_run"] = {
            "release": previous.get("release"),
            "report": previous.get("report"),
            "errors": (previous.get("execution") or {}).get("errors") or [],
        }
    exe = state.setdefault("execution", {})
    exe.setdefault("current_step", None)
    exe.setdefault("decisions", {})
    exe.setdefault("warnings", [])
    exe.setdefault("errors", [])
    return state


def record_decision(state: Dict[str, Any], key: str, value: Any) -> None:
    state.setdefault("execution", {}).setdefault("decisions", {})[key] = value


def decision(state: Dict[str, Any], key: str, default: Any = None) -> Any:
    return ((state.get("execution") or {}).get("decisions") or {}).get(key, default)


def add_warning(state: Dict[str, Any], message: str) -> None:
    logger.warning(message)
    state.setdefault("execution", {}).setdefault("warnings", []).append(message)
