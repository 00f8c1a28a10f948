"""Shared pytest fixtures and helpers."""

import re
import textwrap

import pytest


def deindent(code: str) -> str:
    """Remove common indentation and leading/trailing blank lines."""

    return textwrap.dedent(code).strip("\n")


def normalize_ws(text: str) -> str:
    """Collapse runs of whitespace for resilient textual comparisons."""

    lines = [re.sub(r"\s+", " ", ln).strip() for ln in text.strip().splitlines()]
    return "\n".join(line for line in lines if line)


def block(node_id, block_type, label=None, **params):
    """Return a raw editor node for ``block_type``."""

    data = {"blockType": block_type}
    if label is not None:
        data["label"] = label
    if params:
        data["params"] = params
    return {
        "id": node_id,
        "type": "visualBlock",
        "position": {"x": 0, "y": 0},
        "data": data,
    }


def link(source, target, kind=None):
    """Return a raw editor edge, typed when ``kind`` is given."""

    edge = {"id": f"e_{source}_{kind or 'plain'}_{target}", "source": source, "target": target}
    if kind is not None:
        edge["sourceHandle"] = kind
        edge["targetHandle"] = "in"
        edge["data"] = {"kind": kind}
    return edge


def roots():
    return [block("setup", "setup", "setup()"), block("loop", "loop", "loop()")]


@pytest.fixture
def src():
    """Return a helper that normalises indentation in code snippets."""

    return deindent


@pytest.fixture
def norm():
    """Return a helper that normalises whitespace in generated code."""

    return normalize_ws


@pytest.fixture
def flow():
    """Return a helper assembling a raw version 2 graph from nodes and edges."""

    def make(nodes, edges, *, with_roots=True, version=2):
        raw = {"nodes": (roots() if with_roots else []) + list(nodes), "edges": list(edges)}
        if version is not None:
            raw["version"] = version
        return raw

    return make
