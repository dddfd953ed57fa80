# ==============================
# Config Schemas (Pydantic)
# ==============================
"""
Process-level settings for a host embedding atlas_tools.

Notes:
- Types and defaults only; loader.py does all reading and merging.
- Tools and sources are not settings. They are declared in the tools file
  (config/tools_file.py) and may reference secrets via ${VAR}.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo_root: str = Field(default=".", description="Base for every relative path below.")
    configs_dir: str = Field(default="configs")
    secrets_dir: str = Field(default="secrets")
    tools_file: str = Field(default="tools.yaml", description="YAML or JSON tools file.")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    env: str = Field(default="local", description="Deployment label, e.g. local / stage / prod.")
    debug: bool = False
    paths: PathsConfig = Field(default_factory=PathsConfig)


class InvocationConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Deadline applied to every call unless the caller supplies its own context.",
    )


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    json_format: bool = Field(default=True, description="JSON lines on stdout; plain text when false.")
    console: bool = True
    redact_patterns: List[str] = Field(default_factory=list, description="Extra regexes masked in logs and traces.")


class SecretsConfig(BaseModel):
    """Values for ${VAR} placeholders (looked up by the lowercased placeholder name)."""

    model_config = ConfigDict(extra="allow")

    mongodb_uri: Optional[str] = None


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = Field(default_factory=AppConfig)
    invocation: InvocationConfig = Field(default_factory=InvocationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)

    def _resolve(self, value: str) -> Path:
        p = Path(value).expanduser()
        return p if p.is_absolute() else self.repo_root_path() / p

    def repo_root_path(self) -> Path:
        return Path(self.app.paths.repo_root).expanduser().resolve()

    def tools_file_path(self) -> Path:
        return self._resolve(self.app.paths.tools_file)
