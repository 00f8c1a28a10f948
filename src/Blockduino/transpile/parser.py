"""Entry point that turns persisted editor state into a current block graph."""

from __future__ import annotations

import json
import logging

from .graph import FlowGraph, graph_from_raw, has_typed_edges
from .migrate import migrate
from .normalize import normalize

logger = logging.getLogger(__name__)

PARSE_MODES = ("auto", "legacy", "current")


def parse_flow_graph(raw: object, mode: str = "auto") -> FlowGraph:
    """Validate ``raw`` and return a normalised version 2 graph.

    Parameters
    ----------
    raw:
        Decoded editor state, usually a ``dict`` with ``version``, ``nodes``
        and ``edges``.  Anything unusable is dropped rather than rejected.
    mode:
        ``"legacy"`` always migrates, ``"current"`` never does, and
        ``"auto"`` migrates unless the record is tagged version 2 or already
        carries typed edges.
    """

    if mode not in PARSE_MODES:
        raise ValueError(f"Unknown parse mode '{mode}'. Expected one of: {', '.join(PARSE_MODES)}.")

    graph = graph_from_raw(raw)
    if mode == "auto":
        legacy = graph.version != 2 and not has_typed_edges(graph)
    else:
        legacy = mode == "legacy"

    if legacy:
        logger.debug(f"parsing {len(graph.nodes)} nodes as a legacy graph")
        graph.version = 1
        return migrate(graph)
    graph.version = 2
    return normalize(graph)


def parse_flow_graph_json(text: str, mode: str = "auto") -> FlowGraph:
    """Decode ``text`` as JSON and hand it to :func:`parse_flow_graph`."""

    try:
        raw = json.loads(text)
    except ValueError:
        logger.debug("editor state is not valid JSON; starting from an empty graph")
        raw = None
    return parse_flow_graph(raw, mode=mode)
