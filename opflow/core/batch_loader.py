"""Batch loading - JSON files → (descriptor, context key) items.

Two layouts are accepted:

Operation list
    [{"Type": "mouse_move", "IntValues": [10, 20], "ContextKey": "A-1"}, …]

Saved graph (diagram editor file)
    {"Version": "1.0",
     "Graph": {"Nodes": [{"Id": "…", "Name": "Click OK",
                          "Type": "mouse_left_click",
                          "JsonData": "{\\"IntValues\\": [10, 20]}"}, …]}}

Graph nodes get the context key ``"<Name>-<Id>"``, the lookup key used by
date-json value sources.  A node's JsonData may omit Type; the node's own
Type is used then.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from opflow.core.errors import ValidationError
from opflow.core.operation import OperationDescriptor, node_identifier


@dataclass(frozen=True)
class BatchItem:
    descriptor:  OperationDescriptor
    context_key: Optional[str] = None


def load_batch(path: Path) -> list[BatchItem]:
    """Read a batch file.  Raises ValidationError on malformed content."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ValidationError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_batch(data)


def parse_batch(data: Any) -> list[BatchItem]:
    if isinstance(data, list):
        return [_operation_item(raw, n) for n, raw in enumerate(data)]
    if isinstance(data, dict):
        graph = data.get("Graph", data.get("graph"))
        if isinstance(graph, dict):
            nodes = graph.get("Nodes", graph.get("nodes")) or []
            if not isinstance(nodes, list):
                raise ValidationError("Graph.Nodes must be a list")
            return [_node_item(raw, n) for n, raw in enumerate(nodes)]
    raise ValidationError("Batch must be a list of operations or a saved graph")


def _operation_item(raw: Any, n: int) -> BatchItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"operation #{n} is not an object")
    key = raw.get("ContextKey", raw.get("contextKey"))
    return BatchItem(OperationDescriptor.from_dict(raw), str(key) if key else None)


def _node_item(raw: Any, n: int) -> BatchItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"node #{n} is not an object")
    name    = str(raw.get("Name", ""))
    node_id = raw.get("Id", "")
    payload = raw.get("JsonData") or "{}"
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise ValidationError(f"node '{name}' has invalid JsonData: {exc}") from exc
    descriptor = OperationDescriptor.from_dict(payload, default_type=str(raw.get("Type", "")))
    return BatchItem(descriptor, node_identifier(name, node_id))
