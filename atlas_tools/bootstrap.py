# ==============================
# Runtime Wiring
# ==============================
"""
Wire settings, logging, the tools file and the executor together for a host.

The host calls build_runtime() once at startup and runtime.close() at
shutdown. Nothing here is cached globally; hosts that want a singleton wrap
it themselves (e.g. functools.lru_cache).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from atlas_tools.config.loader import load_settings
from atlas_tools.config.schema import Settings
from atlas_tools.config.tools_file import ToolCatalog, load_catalog
from atlas_tools.governance.security import SecurityRedactor
from atlas_tools.logging.logger import bootstrap_logger
from atlas_tools.tools.executor import ToolExecutor
from atlas_tools.tools.registry import ToolRegistry


@dataclass
class Runtime:
    settings: Settings
    catalog: ToolCatalog
    registry: ToolRegistry
    executor: ToolExecutor
    logger: logging.Logger

    def close(self) -> None:
        self.catalog.close()


def build_runtime(
    settings: Optional[Settings] = None,
    *,
    env: Optional[Dict[str, str]] = None,
    sources: Optional[Mapping[str, Any]] = None,
    configure_logging: bool = True,
) -> Runtime:
    """
    Build a ready-to-use Runtime.

    - settings: load via load_settings() when omitted
    - env: env dict used for ${VAR} expansion in the tools file
    - sources: pre-built sources (tests, or hosts that manage clients themselves)
    """
    if settings is None:
        settings, effective_env = load_settings(env=env)
        env = effective_env

    logger = bootstrap_logger(settings) if configure_logging else logging.getLogger("atlas_tools")
    redactor = SecurityRedactor.from_settings(settings)

    catalog = load_catalog(
        settings.tools_file_path(),
        env=env or {},
        secrets=settings.secrets.model_dump(),
        sources=sources,
    )
    registry = ToolRegistry()
    for tool in catalog.tools.values():
        registry.register(tool)

    executor = ToolExecutor(
        registry=registry,
        redactor=redactor,
        default_timeout_seconds=settings.invocation.default_timeout_seconds,
    )
    logger.info(
        "runtime ready",
        extra={"data": {"tools": catalog.tool_names(), "errors": [e.message for e in catalog.errors]}},
    )
    return Runtime(settings=settings, catalog=catalog, registry=registry, executor=executor, logger=logger)
