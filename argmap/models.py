"""Pure dataclasses for the argument map. No logic, no deps."""

from dataclasses import dataclass, field
from typing import Any

SIDE_A = "Blue"
SIDE_B = "Green"
MODERATOR = "Moderator"
SPEAKERS = (SIDE_A, SIDE_B, MODERATOR)

NODE_TYPES = ("claim", "premise", "evidence", "objection", "rebuttal", "clarification")
RELATIONSHIPS = ("supports", "strongly_supports", "opposes", "refutes", "clarifies", "rebuts")
RATINGS = ("up", "down")


@dataclass
class AgreedBy:
    speaker: str
    text: str | None = None  # quoted excerpt of the agreeing statement


@dataclass
class NodeMetadata:
    confidence: str | None = None      # "high", "medium", "low"
    tags: list[str] = field(default_factory=list)
    tactics: list[str] = field(default_factory=list)
    tactic_reasons: dict[str, str] = field(default_factory=dict)
    agreed_by: AgreedBy | None = None
    contradicts: str | None = None
    moves_goalposts_from: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # unknown keys, round-tripped


@dataclass
class Node:
    id: str
    speaker: str           # "Blue", "Green", "Moderator"
    type: str              # see NODE_TYPES
    content: str
    rating: str | None = None  # "up", "down" or None
    metadata: NodeMetadata = field(default_factory=NodeMetadata)


@dataclass
class Edge:
    id: str
    source: str            # the supporting/attacking node ("from" on the wire)
    target: str            # the node argued about ("to" on the wire)
    relationship: str


@dataclass
class ArgumentMap:
    title: str = ""
    description: str = ""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)


@dataclass
class ModeratorAnalysis:
    leaning: float                 # -1.0 favours Blue, +1.0 favours Green
    leaning_reason: str = ""
    style_a: str = ""
    style_b: str = ""


@dataclass
class Snapshot:
    map: ArgumentMap
    analysis: ModeratorAnalysis | None = None


@dataclass(frozen=True)
class DerivedSets:
    faded: frozenset[str] = frozenset()
    contradiction_faded: frozenset[str] = frozenset()
    walkback_faded: frozenset[str] = frozenset()
    contradiction_border: frozenset[str] = frozenset()
    walkback_border: frozenset[str] = frozenset()


@dataclass
class ModelResponse:
    provider: str          # "claude", "openai", "gemini"
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None
    truncated: bool = False  # output cut off at max_tokens


@dataclass
class Concession:
    node_id: str
    node_speaker: str
    conceding_speaker: str
    content: str
    agreed_text: str | None = None


@dataclass
class SubmissionResult:
    speaker: str
    new_node_ids: list[str] = field(default_factory=list)
    concessions: list[Concession] = field(default_factory=list)


@dataclass
class ChatReply:
    reply: str
    map_updated: bool = False
