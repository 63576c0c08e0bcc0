"""Argumentative tactics the collaborator may tag nodes with."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Tactic:
    symbol: str
    name: str
    kind: str  # "fallacy" or "technique"


TACTICS: dict[str, Tactic] = {
    # Fallacies
    "straw_man": Tactic("♟️", "Straw Man", "fallacy"),
    "ad_hominem": Tactic("🎯", "Ad Hominem", "fallacy"),
    "no_true_scotsman": Tactic("🏴", "No True Scotsman", "fallacy"),
    "false_dilemma": Tactic("⚖️", "False Dilemma", "fallacy"),
    "slippery_slope": Tactic("🎿", "Slippery Slope", "fallacy"),
    "appeal_to_authority": Tactic("👑", "Appeal to Authority", "fallacy"),
    "red_herring": Tactic("🐟", "Red Herring", "fallacy"),
    "circular_reasoning": Tactic("🔄", "Circular Reasoning", "fallacy"),
    "appeal_to_emotion": Tactic("💔", "Appeal to Emotion", "fallacy"),
    "hasty_generalization": Tactic("🏃", "Hasty Generalization", "fallacy"),
    # Good techniques
    "steel_man": Tactic("💪", "Steel Man", "technique"),
    "evidence_based": Tactic("📊", "Evidence Based", "technique"),
    "logical_deduction": Tactic("🧠", "Logical Deduction", "technique"),
    "addresses_counterargument": Tactic("🤝", "Addresses Counterargument", "technique"),
    "cites_source": Tactic("📚", "Cites Source", "technique"),
}

TACTIC_KEYS: list[str] = list(TACTICS)


def known_tactics(keys: list[str]) -> list[Tactic]:
    """Look up tactic keys, silently skipping ones not in the catalogue."""
    return [TACTICS[k] for k in keys if k in TACTICS]
