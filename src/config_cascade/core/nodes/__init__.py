"""Modelo de nós: ConfigNode, NodeKind e validação por tipo."""

from .schema import node_issues, validate_node
from .types import HIERARCHY_LEVELS, ConfigNode, NodeKind, kind_for

__all__ = [
    "ConfigNode",
    "NodeKind",
    "HIERARCHY_LEVELS",
    "kind_for",
    "node_issues",
    "validate_node",
]
