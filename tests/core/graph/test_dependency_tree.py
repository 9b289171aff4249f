# tests/core/graph/test_dependency_tree.py
"""Testes da árvore textual de dependentes."""

import pytest

try:
    from config_cascade.core.graph.builder import build_graph
    from config_cascade.core.graph.tree import render_dependency_tree
except Exception as e:  # noqa: BLE001
    build_graph = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing tree renderer. Import error: {_IMPORT_ERR}")


def test_tree_of_dependents(sample_nodes):
    _require_imports()
    lines = render_dependency_tree(build_graph(sample_nodes), "property_text")
    assert lines[0] == "property_text"
    assert lines[1] == "│ field_name"
    assert lines[2] == "│   fields_contact"
    assert "  field_email" in lines
    assert sum(1 for line in lines if "(circular reference)" in line) == 1


def test_tree_marks_cycles_and_truncates():
    _require_imports()
    nodes = [{"id": "a", "deps": ["b"]}, {"id": "b", "deps": ["a"]}]
    nodes += [{"id": f"c{i}", "deps": ["b"]} for i in range(3)]
    lines = render_dependency_tree(build_graph(nodes), "b", max_children=2)

    assert lines[0] == "b"
    assert lines[1] == "│ a"
    assert lines[2] == "│   b (circular reference)"
    assert lines[3] == "  c0"
    assert lines[-1] == "  ... and 2 more"


def test_indent_is_the_step_per_level():
    """Raiz sem prefixo; `indent` define o recuo de cada nível."""
    _require_imports()
    nodes = [{"id": "root"}, {"id": "x", "deps": ["root"]}, {"id": "y", "deps": ["root"]}]
    nodes.append({"id": "z", "deps": ["x"]})
    lines = render_dependency_tree(build_graph(nodes), "root", max_children=1, indent="    ")

    assert lines == ["root", "    x", "        z", "    ... and 1 more"]
