# ==============================
# Config Loader (only env reader)
# ==============================
"""
Build the single Settings object for a host process.

Rules:
- The one module that touches os.environ, .env and secrets/secrets.yaml.
- Tools, sources and the executor get a Settings object or an env dict;
  they never look anything up themselves.
- Paths and the env mapping are injectable so tests never depend on the
  machine they run on.

Layering (later wins):
defaults < configs/{app,invocation,logging}.yaml < secrets/secrets.yaml
< .env < process env

Env keys use ATLAS_TOOLS__SECTION__FIELD, e.g.
ATLAS_TOOLS__INVOCATION__DEFAULT_TIMEOUT_SECONDS=2.5
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from atlas_tools.config.schema import Settings

ENV_PREFIX = "ATLAS_TOOLS__"
CONFIG_SECTIONS = ("app", "invocation", "logging")


# ==============================
# File Readers
# ==============================
def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Accept both `{level: DEBUG}` and `{logging: {level: DEBUG}}` file shapes."""
    inner = data.get(name)
    if isinstance(inner, dict) and len(data) == 1:
        return inner
    return data


def _parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    s = line.strip()
    if s.startswith("export "):
        s = s[len("export ") :].lstrip()
    if not s or s.startswith("#") or "=" not in s:
        return None
    key, _, val = s.partition("=")
    key = key.strip()
    val = val.strip()
    if len(val) >= 2 and val[0] == val[-1] and val[0] in "\"'":
        val = val[1:-1]
    return (key, val) if key else None


def _read_dotenv(path: Path) -> Dict[str, str]:
    """KEY=VALUE lines; comments, blanks and `export ` prefixes are tolerated."""
    if not path.is_file():
        return {}
    pairs = (_parse_env_line(line) for line in path.read_text(encoding="utf-8").splitlines())
    return dict(p for p in pairs if p is not None)


# ==============================
# Merging
# ==============================
def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge returning a new dict; values from `override` win."""
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _scalar(raw: str) -> Any:
    """Best-effort typing of env strings: bool, int, float, else the string."""
    text = raw.strip()
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if not any(c.isdigit() for c in text):
        return text
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def _nest(path: Iterable[str], value: Any) -> Dict[str, Any]:
    """('logging', 'level'), 'DEBUG' -> {'logging': {'level': 'DEBUG'}}"""
    keys = list(path)
    out: Dict[str, Any] = {keys[-1]: value}
    for key in reversed(keys[:-1]):
        out = {key: out}
    return out


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [seg.lower() for seg in name[len(ENV_PREFIX) :].split("__")]
        if not all(path):
            continue
        overrides = deep_merge(overrides, _nest(path, _scalar(raw)))
    return overrides


# ==============================
# Public Loader API
# ==============================
def load_settings(
    *,
    repo_root: Optional[str] = None,
    configs_dir: Optional[str] = None,
    secrets_file: Optional[str] = None,
    dotenv_file: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> Tuple[Settings, Dict[str, str]]:
    """
    Load and validate Settings.

    Returns (settings, effective_env). effective_env is the process env with
    .env values filled in underneath it; the tools file uses it for ${VAR}
    expansion.

    Defaults: repo_root=cwd, configs_dir=<root>/configs,
    secrets_file=<root>/secrets/secrets.yaml, dotenv_file=<root>/.env,
    env=os.environ.
    """
    root = Path(repo_root or os.getcwd()).expanduser().resolve()
    cfg_dir = root / (configs_dir or "configs")
    sec_path = Path(secrets_file) if secrets_file else root / "secrets" / "secrets.yaml"
    dotenv_path = Path(dotenv_file) if dotenv_file else root / ".env"

    layers = [{name: _section(_read_yaml(cfg_dir / f"{name}.yaml"), name)} for name in CONFIG_SECTIONS]
    layers.append({"secrets": _section(_read_yaml(sec_path), "secrets")})

    # real env wins over .env
    effective_env = {**_read_dotenv(dotenv_path), **(dict(env) if env is not None else dict(os.environ))}
    layers.append(_env_overrides(effective_env))
    layers.append({"app": {"paths": {"repo_root": str(root)}}})

    merged: Dict[str, Any] = {}
    for layer in layers:
        merged = deep_merge(merged, layer)

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
    return settings, effective_env
