# ==============================
# Tools File Loader
# ==============================
"""
Load a tools file (YAML or JSON) and bind its tools to their sources.

File shape:

    sources:
      my-mongo:
        kind: mongodb
        uri: ${MONGODB_URI}
        database: sample_mflix
    tools:
      find-movies:
        kind: mongodb-atlas
        source: my-mongo
        description: Find movies by title.
        collection: movies
        operation: find
        query: {}
        parameters:
          - name: title
            type: string
            description: Exact movie title.

Rules:
- Map keys become each entry's `name`.
- ${VAR} placeholders resolve from the injected env, then from secrets.
- One broken tool or source never stops the others: failures are recorded in
  ToolCatalog.errors and logged.
- No os.environ reads here; the env dict is injected (see config/loader.py).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pymongo.errors import PyMongoError

from atlas_tools.contracts.errors import ConfigurationError
from atlas_tools.governance.security import SecurityRedactor
from atlas_tools.sources.mongodb import SOURCE_KINDS
from atlas_tools.tools.base import BaseTool
from atlas_tools.tools.registry import ToolKindRegistry

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_REDACTOR = SecurityRedactor()


# ==============================
# Raw File Model
# ==============================
class ToolsFile(BaseModel):
    """Top-level tools file; entries stay raw until their kind is resolved."""
    model_config = ConfigDict(extra="forbid")

    sources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    tools: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


# ==============================
# Catalog
# ==============================
@dataclass(frozen=True)
class ToolLoadError:
    tool: Optional[str]
    source: Optional[str]
    message: str


@dataclass
class ToolCatalog:
    sources: Dict[str, Any] = field(default_factory=dict)
    tools: Dict[str, BaseTool] = field(default_factory=dict)
    errors: List[ToolLoadError] = field(default_factory=list)

    def tool_names(self) -> List[str]:
        return sorted(self.tools)

    def close(self) -> None:
        for src in self.sources.values():
            close = getattr(src, "close", None)
            if callable(close):
                close()


# ==============================
# Reading
# ==============================
def read_tools_file(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Tools file not found: {p}")
    raw = p.read_text(encoding="utf-8")
    suffix = p.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw)
        elif suffix == ".json":
            data = json.loads(raw)
        else:
            raise ConfigurationError(f"Unsupported tools file format '{suffix}'. Use .yaml/.yml or .json")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Invalid tools file {p}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Top-level tools file must be a mapping/dict.")
    return data


def parse_tools_file(
    obj: Mapping[str, Any],
    *,
    env: Optional[Mapping[str, str]] = None,
    secrets: Optional[Mapping[str, Any]] = None,
) -> ToolsFile:
    expanded = expand_placeholders(dict(obj), env=env or {}, secrets=secrets or {})
    try:
        return ToolsFile.model_validate(expanded)
    except ValidationError as e:
        raise ConfigurationError(f"Tools file validation error: {e}") from e


def expand_placeholders(value: Any, *, env: Mapping[str, str], secrets: Mapping[str, Any]) -> Any:
    if isinstance(value, str):
        def replace(match: "re.Match[str]") -> str:
            key = match.group(1)
            if key in env:
                return str(env[key])
            secret = secrets.get(key.lower())
            if secret is not None:
                return str(secret)
            raise ConfigurationError(f"Unresolved placeholder ${{{key}}} in tools file", details={"placeholder": key})

        return _PLACEHOLDER_RE.sub(replace, value)
    if isinstance(value, dict):
        return {k: expand_placeholders(v, env=env, secrets=secrets) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_placeholders(v, env=env, secrets=secrets) for v in value]
    return value


# ==============================
# Binding
# ==============================
def build_catalog(
    tools_file: ToolsFile,
    *,
    sources: Optional[Mapping[str, Any]] = None,
    kinds: Optional[ToolKindRegistry] = None,
) -> ToolCatalog:
    """
    Initialize sources (unless pre-built ones are injected) and bind every tool.
    """
    kinds = kinds or ToolKindRegistry.default()
    catalog = ToolCatalog()

    if sources is not None:
        catalog.sources.update(sources)
    else:
        for name, raw in tools_file.sources.items():
            try:
                catalog.sources[name] = _init_source(name, raw)
            except ConfigurationError as e:
                _record(catalog, ToolLoadError(tool=None, source=name, message=e.message))

    for name, raw in tools_file.tools.items():
        try:
            config_cls = kinds.resolve(str(raw.get("kind", "")))
        except KeyError as e:
            _record(catalog, ToolLoadError(tool=name, source=raw.get("source"), message=str(e.args[0])))
            continue
        try:
            config = config_cls.model_validate({**raw, "name": name})
            catalog.tools[name] = config.initialize(catalog.sources)
        except ValidationError as e:
            _record(catalog, ToolLoadError(tool=name, source=raw.get("source"), message=f"invalid tool config: {e}"))
        except ConfigurationError as e:
            _record(catalog, ToolLoadError(tool=name, source=raw.get("source"), message=e.message))

    logger.info(
        "tools loaded",
        extra={"data": {"tools": catalog.tool_names(), "sources": sorted(catalog.sources), "errors": len(catalog.errors)}},
    )
    return catalog


def load_catalog(
    path: Union[str, Path],
    *,
    env: Optional[Mapping[str, str]] = None,
    secrets: Optional[Mapping[str, Any]] = None,
    sources: Optional[Mapping[str, Any]] = None,
) -> ToolCatalog:
    tools_file = parse_tools_file(read_tools_file(path), env=env, secrets=secrets)
    return build_catalog(tools_file, sources=sources)


def _init_source(name: str, raw: Mapping[str, Any]) -> Any:
    kind = str(raw.get("kind", ""))
    config_cls = SOURCE_KINDS.get(kind)
    if config_cls is None:
        raise ConfigurationError(f"Unknown source kind: {kind!r}", details={"source": name})
    try:
        config = config_cls.model_validate({**raw, "name": name})
    except ValidationError as e:
        raise ConfigurationError(f"invalid source config: {e}", details={"source": name}) from e
    try:
        return config.initialize()
    except PyMongoError as e:
        raise ConfigurationError(f"unable to initialize source: {e}", details={"source": name}) from e


def _record(catalog: ToolCatalog, err: ToolLoadError) -> None:
    # pydantic messages echo input values, which may include connection strings
    err = ToolLoadError(tool=err.tool, source=err.source, message=_REDACTOR.redact_text(err.message))
    catalog.errors.append(err)
    logger.warning(
        "tool setup failed",
        extra={"data": {"tool": err.tool, "source": err.source, "error": err.message}},
    )
