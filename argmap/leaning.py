"""Displayed debate leaning: collaborator baseline adjusted by local invalidation."""

from dataclasses import dataclass, field

from argmap.invalidation import invalidated_ids
from argmap.models import SIDE_A, SIDE_B, ArgumentMap, DerivedSets, ModeratorAnalysis

DEFAULT_WEIGHT = 0.7

# Within this distance of zero the debate reads as balanced
_BALANCED_BAND = 0.1


@dataclass
class Agreement:
    node_id: str
    node_speaker: str
    content: str
    agreed_by: str | None


@dataclass
class LeaningReport:
    baseline: float
    effectiveness_a: float
    effectiveness_b: float
    adjustment: float
    displayed: float
    label: str
    reason: str = ""
    agreements: list[Agreement] = field(default_factory=list)


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def effectiveness(argument_map: ArgumentMap, derived: DerivedSets, speaker: str) -> float:
    """Share of ``speaker``'s nodes that are not invalidated. 1.0 with no nodes."""
    own = [n.id for n in argument_map.nodes if n.speaker == speaker]
    if not own:
        return 1.0
    invalid = invalidated_ids(derived)
    standing = sum(1 for node_id in own if node_id not in invalid)
    return standing / len(own)


def leaning_label(value: float) -> str:
    if value < -_BALANCED_BAND:
        return f"Leaning {SIDE_A}"
    if value > _BALANCED_BAND:
        return f"Leaning {SIDE_B}"
    return "Balanced"


def agreements(argument_map: ArgumentMap) -> list[Agreement]:
    """Points of agreement: every node currently rated up."""
    return [
        Agreement(
            node_id=n.id,
            node_speaker=n.speaker,
            content=n.content,
            agreed_by=n.metadata.agreed_by.speaker if n.metadata.agreed_by else None,
        )
        for n in argument_map.nodes
        if n.rating == "up"
    ]


def compute_leaning(
    argument_map: ArgumentMap,
    derived: DerivedSets,
    analysis: ModeratorAnalysis | None,
    weight: float = DEFAULT_WEIGHT,
) -> LeaningReport:
    """Blend the collaborator's baseline with observed invalidation.

    adjustment = (effectiveness(Green) - effectiveness(Blue)) * weight, so a
    side whose nodes keep getting faded loses ground. The result is clamped
    to [-1, 1].
    """
    baseline = analysis.leaning if analysis is not None else 0.0
    eff_a = effectiveness(argument_map, derived, SIDE_A)
    eff_b = effectiveness(argument_map, derived, SIDE_B)
    adjustment = (eff_b - eff_a) * weight
    displayed = clamp(baseline + adjustment)
    return LeaningReport(
        baseline=baseline,
        effectiveness_a=eff_a,
        effectiveness_b=eff_b,
        adjustment=adjustment,
        displayed=displayed,
        label=leaning_label(displayed),
        reason=analysis.leaning_reason if analysis is not None else "",
        agreements=agreements(argument_map),
    )
