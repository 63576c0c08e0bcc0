"""Graph store operations: payload validation, rating toggles, serialization.

Every function here is pure. Maps are never mutated in place; a changed map is
always a new ArgumentMap so history snapshots stay intact.
"""

import dataclasses
import logging
from collections import Counter
from typing import Any

from argmap.models import (
    NODE_TYPES,
    RATINGS,
    RELATIONSHIPS,
    SPEAKERS,
    AgreedBy,
    ArgumentMap,
    Edge,
    Node,
    NodeMetadata,
)

logger = logging.getLogger(__name__)

_KNOWN_METADATA_KEYS = {
    "confidence",
    "tags",
    "tactics",
    "tactic_reasons",
    "agreed_by",
    "contradicts",
    "moves_goalposts_from",
}

_SUMMARY_MAX_LEN = 60


class ValidationError(Exception):
    """Raised when an externally supplied map payload is malformed."""


def _require_str(raw: dict, key: str, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{where}: missing or empty '{key}'")
    return value


def _optional_id(value: Any, where: str, key: str) -> str | None:
    # The collaborator writes "null", "" or omits the key when nothing applies.
    if value is None or value == "" or value == "null":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{where}: '{key}' must be a node id string")
    return value


def _parse_metadata(raw: Any, where: str) -> NodeMetadata:
    if raw is None:
        return NodeMetadata()
    if not isinstance(raw, dict):
        raise ValidationError(f"{where}: metadata must be an object")

    agreed_by = None
    agreed_raw = raw.get("agreed_by")
    if agreed_raw:
        if not isinstance(agreed_raw, dict) or not agreed_raw.get("speaker"):
            raise ValidationError(f"{where}: agreed_by must carry a speaker")
        agreed_by = AgreedBy(speaker=str(agreed_raw["speaker"]), text=agreed_raw.get("text"))

    tags = raw.get("tags") or []
    tactics = raw.get("tactics") or []
    reasons = raw.get("tactic_reasons") or {}
    if not isinstance(tags, list) or not isinstance(tactics, list) or not isinstance(reasons, dict):
        raise ValidationError(f"{where}: tags/tactics must be lists and tactic_reasons an object")

    return NodeMetadata(
        confidence=raw.get("confidence"),
        tags=[str(t) for t in tags],
        tactics=[str(t) for t in tactics],
        tactic_reasons={str(k): str(v) for k, v in reasons.items()},
        agreed_by=agreed_by,
        contradicts=_optional_id(raw.get("contradicts"), where, "contradicts"),
        moves_goalposts_from=_optional_id(
            raw.get("moves_goalposts_from"), where, "moves_goalposts_from"
        ),
        extra={k: v for k, v in raw.items() if k not in _KNOWN_METADATA_KEYS},
    )


def _parse_node(raw: Any, index: int) -> Node:
    where = f"node[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{where}: must be an object")
    node_id = _require_str(raw, "id", where)
    where = f"node {node_id}"

    speaker = _require_str(raw, "speaker", where)
    if speaker not in SPEAKERS:
        raise ValidationError(f"{where}: unknown speaker '{speaker}'")
    node_type = _require_str(raw, "type", where)
    if node_type not in NODE_TYPES:
        raise ValidationError(f"{where}: unknown node type '{node_type}'")
    content = raw.get("content")
    if not isinstance(content, str):
        raise ValidationError(f"{where}: missing 'content'")

    rating = raw.get("rating")
    if rating in ("", "null"):
        rating = None
    if rating is not None and rating not in RATINGS:
        raise ValidationError(f"{where}: unknown rating '{rating}'")

    return Node(
        id=node_id,
        speaker=speaker,
        type=node_type,
        content=content,
        rating=rating,
        metadata=_parse_metadata(raw.get("metadata"), where),
    )


def _parse_edge(raw: Any, index: int) -> Edge:
    where = f"edge[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{where}: must be an object")
    edge_id = _require_str(raw, "id", where)
    where = f"edge {edge_id}"
    relationship = _require_str(raw, "relationship", where)
    if relationship not in RELATIONSHIPS:
        raise ValidationError(f"{where}: unknown relationship '{relationship}'")
    return Edge(
        id=edge_id,
        source=_require_str(raw, "from", where),
        target=_require_str(raw, "to", where),
        relationship=relationship,
    )


def _check_duplicates(ids: list[str], kind: str) -> None:
    dupes = sorted(i for i, count in Counter(ids).items() if count > 1)
    if dupes:
        raise ValidationError(f"Duplicate {kind} ids: {', '.join(dupes)}")


def parse_map(payload: Any, previous: ArgumentMap | None = None) -> ArgumentMap:
    """Validate an external payload and build an ArgumentMap from it.

    Accepts either the bare map object or the ``{"argument_map": {...}}``
    wrapper the collaborator replies with.

    Args:
        payload: Decoded JSON from the reasoning collaborator or a saved file.
        previous: When given, existing node ids must keep their speaker.

    Raises:
        ValidationError: On any shape problem, duplicate id or dangling reference.
    """
    if isinstance(payload, dict) and "argument_map" in payload:
        payload = payload["argument_map"]
    if not isinstance(payload, dict):
        raise ValidationError("Map payload must be a JSON object")

    raw_nodes = payload.get("nodes")
    raw_edges = payload.get("edges")
    if not isinstance(raw_nodes, list):
        raise ValidationError("Map payload is missing the 'nodes' array")
    if not isinstance(raw_edges, list):
        raise ValidationError("Map payload is missing the 'edges' array")

    nodes = [_parse_node(raw, i) for i, raw in enumerate(raw_nodes)]
    edges = [_parse_edge(raw, i) for i, raw in enumerate(raw_edges)]

    _check_duplicates([n.id for n in nodes], "node")
    _check_duplicates([e.id for e in edges], "edge")

    known = {n.id for n in nodes}
    for edge in edges:
        for end in (edge.source, edge.target):
            if end not in known:
                raise ValidationError(f"edge {edge.id}: references unknown node '{end}'")

    for node in nodes:
        for ref in (node.metadata.contradicts, node.metadata.moves_goalposts_from):
            if ref is not None and ref not in known:
                raise ValidationError(f"node {node.id}: flags unknown node '{ref}'")

    if previous is not None:
        old_speakers = {n.id: n.speaker for n in previous.nodes}
        for node in nodes:
            old = old_speakers.get(node.id)
            if old is not None and old != node.speaker:
                raise ValidationError(
                    f"node {node.id}: speaker changed from {old} to {node.speaker}"
                )

    out_degree = Counter(e.source for e in edges)
    multi = sorted(node_id for node_id, count in out_degree.items() if count > 1)
    if multi:
        logger.warning("Nodes with more than one outgoing edge: %s", ", ".join(multi))

    return ArgumentMap(
        title=str(payload.get("title") or ""),
        description=str(payload.get("description") or ""),
        nodes=nodes,
        edges=edges,
    )


def _metadata_to_dict(meta: NodeMetadata) -> dict[str, Any]:
    out: dict[str, Any] = dict(meta.extra)
    out.update(
        {
            "confidence": meta.confidence,
            "tags": list(meta.tags),
            "tactics": list(meta.tactics),
            "tactic_reasons": dict(meta.tactic_reasons),
        }
    )
    if meta.agreed_by is not None:
        agreed: dict[str, Any] = {"speaker": meta.agreed_by.speaker}
        if meta.agreed_by.text:
            agreed["text"] = meta.agreed_by.text
        out["agreed_by"] = agreed
    if meta.contradicts:
        out["contradicts"] = meta.contradicts
    if meta.moves_goalposts_from:
        out["moves_goalposts_from"] = meta.moves_goalposts_from
    return out


def map_to_dict(argument_map: ArgumentMap) -> dict[str, Any]:
    """Serialize to the wire shape the collaborator reads and writes."""
    return {
        "title": argument_map.title,
        "description": argument_map.description,
        "nodes": [
            {
                "id": n.id,
                "type": n.type,
                "content": n.content,
                "speaker": n.speaker,
                "rating": n.rating,
                "metadata": _metadata_to_dict(n.metadata),
            }
            for n in argument_map.nodes
        ],
        "edges": [
            {"id": e.id, "from": e.source, "to": e.target, "relationship": e.relationship}
            for e in argument_map.edges
        ],
    }


def node_by_id(argument_map: ArgumentMap, node_id: str) -> Node | None:
    return next((n for n in argument_map.nodes if n.id == node_id), None)


def apply_rating(argument_map: ArgumentMap, node_id: str, rating: str, speaker: str) -> ArgumentMap:
    """Toggle a thumbs-up/down rating on one node.

    "up" records ``speaker`` as the agreeing side; rating the same way twice
    clears both the rating and agreed_by; "down" always clears agreed_by.
    Returns the same map object when ``node_id`` is unknown.

    Raises:
        ValueError: If ``rating`` is not "up" or "down".
    """
    if rating not in RATINGS:
        raise ValueError(f"Rating must be one of {RATINGS}, got {rating!r}")

    target = node_by_id(argument_map, node_id)
    if target is None:
        logger.debug("Rating ignored, unknown node: %s", node_id)
        return argument_map

    if target.rating == rating:
        new_rating, agreed_by = None, None
    elif rating == "up":
        new_rating, agreed_by = "up", AgreedBy(speaker=speaker)
    else:
        new_rating, agreed_by = "down", None

    updated = dataclasses.replace(
        target,
        rating=new_rating,
        metadata=dataclasses.replace(target.metadata, agreed_by=agreed_by),
    )
    nodes = [updated if n.id == node_id else n for n in argument_map.nodes]
    return dataclasses.replace(argument_map, nodes=nodes)


def apply_replacement(argument_map: ArgumentMap, replacement: ArgumentMap) -> ArgumentMap:
    """Merge a validated full replacement map. Replacement wins wholesale."""
    logger.debug(
        "Replacing map: %d -> %d nodes, %d -> %d edges",
        len(argument_map.nodes),
        len(replacement.nodes),
        len(argument_map.edges),
        len(replacement.edges),
    )
    return replacement


def new_node_ids(old: ArgumentMap, new: ArgumentMap) -> list[str]:
    """Ids present in ``new`` but not ``old``, in ``new``'s order."""
    seen = {n.id for n in old.nodes}
    return [n.id for n in new.nodes if n.id not in seen]


def speaker_summary(argument_map: ArgumentMap, speaker: str) -> str | None:
    """Short position summary: the speaker's first claim, truncated."""
    claim = next(
        (n for n in argument_map.nodes if n.speaker == speaker and n.type == "claim"),
        None,
    )
    if claim is None:
        return None
    text = claim.content
    if len(text) > _SUMMARY_MAX_LEN:
        return text[: _SUMMARY_MAX_LEN - 3] + "..."
    return text
