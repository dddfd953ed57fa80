# ==============================
# Tool Registries
# ==============================
"""
Two small registries.

- ToolKindRegistry: kind tag -> config class. The tools-file loader uses it
  to turn raw `tools:` entries into validated configs.
- ToolRegistry: name -> bound tool. The executor resolves tools here.
"""

from __future__ import annotations

from typing import Any, Dict, List, Type

from atlas_tools.tools.base import BaseTool, BaseToolConfig
from atlas_tools.tools.mongodb_tool import TOOL_KIND as MONGODB_TOOL_KIND
from atlas_tools.tools.mongodb_tool import MongoDBToolConfig


class ToolKindRegistry:
    def __init__(self) -> None:
        self._kinds: Dict[str, Type[BaseToolConfig]] = {}

    def register(self, *, kind: str, config_cls: Type[BaseToolConfig], overwrite: bool = False) -> None:
        if not overwrite and kind in self._kinds:
            raise ValueError(f"Tool kind already registered: {kind}")
        self._kinds[kind] = config_cls

    def resolve(self, kind: str) -> Type[BaseToolConfig]:
        cls = self._kinds.get(kind)
        if cls is None:
            raise KeyError(f"Unknown tool kind: {kind}")
        return cls

    def kinds(self) -> List[str]:
        return sorted(self._kinds)

    @classmethod
    def default(cls) -> "ToolKindRegistry":
        reg = cls()
        reg.register(kind=MONGODB_TOOL_KIND, config_cls=MongoDBToolConfig)
        return reg


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: Dict[str, BaseTool] = {}

    def register(self, tool: BaseTool, *, overwrite: bool = False) -> None:
        norm = _norm(tool.name)
        if not overwrite and norm in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[norm] = tool

    def resolve(self, name: str) -> BaseTool:
        tool = self._tools.get(_norm(name))
        if tool is None:
            raise KeyError(f"Unknown tool: {name}")
        return tool

    def has(self, name: str) -> bool:
        return _norm(name) in self._tools

    def list(self) -> Dict[str, Dict[str, Any]]:
        return {k: {"name": v.name, "kind": v.kind} for k, v in self._tools.items()}

    def manifests(self) -> Dict[str, Dict[str, Any]]:
        return {t.name: t.manifest().to_dict() for t in self._tools.values()}


def _norm(name: str) -> str:
    return name.strip()
