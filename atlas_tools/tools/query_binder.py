# ==============================
# Query Binder
# ==============================
"""
Overlay validated parameters onto a tool's stored query template.

The template is shared by every invocation of a tool (possibly from many
threads at once), so binding always works on a deep copy and the template
itself is never written to.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping

from atlas_tools.contracts.parameter_schema import ParamValues


def bind_query(template: Mapping[str, Any], params: ParamValues) -> Dict[str, Any]:
    """Return a fresh query: deep copy of `template` with params overlaid by name."""
    bound: Dict[str, Any] = copy.deepcopy(dict(template))
    for name, value in params.as_map().items():
        bound[name] = copy.deepcopy(value)
    return bound


def build_stage_pipeline(params: ParamValues) -> List[Dict[str, Any]]:
    """One pipeline stage per parameter, keyed by parameter name, in schema order."""
    return [{p.name: copy.deepcopy(p.value)} for p in params]
