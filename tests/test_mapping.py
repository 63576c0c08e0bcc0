"""Tests for argmap/mapping.py: validation, rating toggles, serialization."""

import pytest

from argmap.mapping import (
    ValidationError,
    apply_rating,
    map_to_dict,
    new_node_ids,
    node_by_id,
    parse_map,
    speaker_summary,
)
from argmap.models import SIDE_A, SIDE_B, ArgumentMap
from tests.conftest import edge_dict, make_node, node_dict


def _payload(nodes: list[dict], edges: list[dict], **extra) -> dict:
    return {"title": "T", "description": "D", "nodes": nodes, "edges": edges, **extra}


# --- parse_map ---

def test_parse_map_accepts_wrapper():
    payload = {
        "argument_map": _payload(
            [node_dict("node_1"), node_dict("node_2", node_type="premise")],
            [edge_dict("edge_1", "node_2", "node_1")],
        )
    }
    result = parse_map(payload)
    assert [n.id for n in result.nodes] == ["node_1", "node_2"]
    assert result.edges[0].source == "node_2"
    assert result.edges[0].target == "node_1"
    assert result.title == "T"


def test_parse_map_accepts_bare_map():
    result = parse_map(_payload([node_dict("node_1")], []))
    assert len(result.nodes) == 1


def test_parse_map_reads_metadata():
    node = node_dict(
        "node_2",
        SIDE_B,
        rating="up",
        metadata={
            "tactics": ["straw_man"],
            "tactic_reasons": {"straw_man": "Misstates the claim"},
            "agreed_by": {"speaker": SIDE_A, "text": "Fair point"},
            "contradicts": "node_1",
            "source": "interview",
        },
    )
    result = parse_map(_payload([node_dict("node_1", SIDE_B), node], []))
    meta = result.nodes[1].metadata
    assert result.nodes[1].rating == "up"
    assert meta.tactics == ["straw_man"]
    assert meta.agreed_by.speaker == SIDE_A
    assert meta.agreed_by.text == "Fair point"
    assert meta.contradicts == "node_1"
    assert meta.extra == {"source": "interview"}


def test_parse_map_null_flags_become_none():
    node = node_dict("node_1", rating=None, metadata={"contradicts": None, "moves_goalposts_from": "null"})
    result = parse_map(_payload([node], []))
    assert result.nodes[0].metadata.contradicts is None
    assert result.nodes[0].metadata.moves_goalposts_from is None


@pytest.mark.parametrize("missing", ["nodes", "edges"])
def test_parse_map_rejects_missing_arrays(missing):
    payload = _payload([node_dict("node_1")], [])
    del payload[missing]
    with pytest.raises(ValidationError, match=missing):
        parse_map(payload)


def test_parse_map_rejects_non_object():
    with pytest.raises(ValidationError):
        parse_map(["not", "a", "map"])


def test_parse_map_rejects_dangling_edge():
    payload = _payload([node_dict("node_1")], [edge_dict("edge_1", "node_9", "node_1")])
    with pytest.raises(ValidationError, match="unknown node 'node_9'"):
        parse_map(payload)


def test_parse_map_rejects_duplicate_node_ids():
    payload = _payload([node_dict("node_1"), node_dict("node_1")], [])
    with pytest.raises(ValidationError, match="Duplicate node ids"):
        parse_map(payload)


def test_parse_map_rejects_duplicate_edge_ids():
    payload = _payload(
        [node_dict("node_1"), node_dict("node_2"), node_dict("node_3")],
        [edge_dict("edge_1", "node_2", "node_1"), edge_dict("edge_1", "node_3", "node_1")],
    )
    with pytest.raises(ValidationError, match="Duplicate edge ids"):
        parse_map(payload)


def test_parse_map_rejects_missing_node_id():
    raw = node_dict("node_1")
    del raw["id"]
    with pytest.raises(ValidationError, match="'id'"):
        parse_map(_payload([raw], []))


def test_parse_map_rejects_unknown_speaker():
    with pytest.raises(ValidationError, match="unknown speaker"):
        parse_map(_payload([node_dict("node_1", "User C")], []))


def test_parse_map_rejects_unknown_relationship():
    payload = _payload(
        [node_dict("node_1"), node_dict("node_2")],
        [edge_dict("edge_1", "node_2", "node_1", "agrees_with")],
    )
    with pytest.raises(ValidationError, match="unknown relationship"):
        parse_map(payload)


def test_parse_map_rejects_dangling_contradiction():
    node = node_dict("node_1", metadata={"contradicts": "node_7"})
    with pytest.raises(ValidationError, match="node_7"):
        parse_map(_payload([node], []))


def test_parse_map_rejects_speaker_change():
    previous = ArgumentMap(nodes=[make_node("node_1", SIDE_A)])
    with pytest.raises(ValidationError, match="speaker changed"):
        parse_map(_payload([node_dict("node_1", SIDE_B)], []), previous=previous)


def test_parse_map_allows_multi_parent_with_warning(caplog):
    payload = _payload(
        [node_dict("node_1"), node_dict("node_2"), node_dict("node_3", node_type="evidence")],
        [edge_dict("edge_1", "node_3", "node_1"), edge_dict("edge_2", "node_3", "node_2")],
    )
    result = parse_map(payload)
    assert len(result.edges) == 2
    assert any("more than one outgoing edge" in msg for msg in caplog.messages)


# --- map_to_dict ---

def test_map_to_dict_uses_wire_keys(debate_map):
    out = map_to_dict(debate_map)
    assert out["edges"][0] == {"id": "e_P1_C1", "from": "P1", "to": "C1", "relationship": "supports"}
    assert out["nodes"][0]["speaker"] == SIDE_A
    assert "contradicts" not in out["nodes"][0]["metadata"]


def test_map_to_dict_parses_back(debate_map):
    assert parse_map(map_to_dict(debate_map)) == debate_map


# --- apply_rating ---

def test_rating_up_sets_agreed_by(debate_map):
    result = apply_rating(debate_map, "P1", "up", SIDE_B)
    node = node_by_id(result, "P1")
    assert node.rating == "up"
    assert node.metadata.agreed_by.speaker == SIDE_B


def test_rating_up_twice_clears(debate_map):
    once = apply_rating(debate_map, "P1", "up", SIDE_B)
    twice = apply_rating(once, "P1", "up", SIDE_B)
    node = node_by_id(twice, "P1")
    assert node.rating is None
    assert node.metadata.agreed_by is None


def test_rating_up_then_down_leaves_no_agreed_by(debate_map):
    up = apply_rating(debate_map, "P1", "up", SIDE_B)
    down = apply_rating(up, "P1", "down", SIDE_B)
    node = node_by_id(down, "P1")
    assert node.rating == "down"
    assert node.metadata.agreed_by is None


def test_rating_down_twice_clears(debate_map):
    once = apply_rating(debate_map, "O1", "down", SIDE_B)
    twice = apply_rating(once, "O1", "down", SIDE_B)
    assert node_by_id(twice, "O1").rating is None


def test_rating_does_not_mutate_input(debate_map):
    apply_rating(debate_map, "P1", "up", SIDE_B)
    assert node_by_id(debate_map, "P1").rating is None
    assert node_by_id(debate_map, "P1").metadata.agreed_by is None


def test_rating_unknown_node_is_noop(debate_map):
    assert apply_rating(debate_map, "node_99", "up", SIDE_B) is debate_map


def test_rating_rejects_other_values(debate_map):
    with pytest.raises(ValueError):
        apply_rating(debate_map, "P1", "sideways", SIDE_B)


# --- helpers ---

def test_new_node_ids_in_new_order(debate_map):
    bigger = ArgumentMap(nodes=[*debate_map.nodes, make_node("R1", SIDE_A, "rebuttal"), make_node("E1")])
    assert new_node_ids(debate_map, bigger) == ["R1", "E1"]


def test_speaker_summary_first_claim(debate_map):
    assert speaker_summary(debate_map, SIDE_A) == "Statement C1"
    assert speaker_summary(debate_map, SIDE_B) is None


def test_speaker_summary_truncates():
    long_claim = make_node("C1", SIDE_A, "claim", content="x" * 80)
    summary = speaker_summary(ArgumentMap(nodes=[long_claim]), SIDE_A)
    assert len(summary) == 60
    assert summary.endswith("...")
