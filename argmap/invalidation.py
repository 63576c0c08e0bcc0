"""Derived fade/contradiction/walkback sets over the argument map.

Everything is recomputed from (nodes, edges) on each call. Nothing is cached
and nothing is written back onto the nodes.

Two relations are kept apart:

* the support layer: each edge points from a supporting/attacking node to the
  node it argues about. ``_predecessors`` indexes it backwards.
* the overlay: ``metadata.contradicts`` and ``metadata.moves_goalposts_from``
  link a node to an earlier position of the same speaker.
"""

import logging
from collections.abc import Iterable

from argmap.models import DerivedSets, Edge, Node

logger = logging.getLogger(__name__)


def _predecessors(edges: Iterable[Edge]) -> dict[str, list[str]]:
    """Map each node id to the nodes whose outgoing edge targets it."""
    preds: dict[str, list[str]] = {}
    for edge in edges:
        preds.setdefault(edge.target, []).append(edge.source)
    return preds


def backward_closure(seeds: Iterable[str], preds: dict[str, list[str]]) -> set[str]:
    """Smallest superset of ``seeds`` closed under predecessors."""
    closure = set(seeds)
    stack = list(closure)
    while stack:
        current = stack.pop()
        for pred in preds.get(current, ()):
            if pred not in closure:
                closure.add(pred)
                stack.append(pred)
    return closure


def compute_derived_sets(nodes: list[Node], edges: list[Edge]) -> DerivedSets:
    """Compute the five derived id-sets for the given graph.

    1. Agreed (rating up) and retracted (rating down) nodes fade together with
       everything that argues for or against them.
    2. Nodes that were contradicted or walked back from, and their backward
       closures, form the contradiction/walkback faded sets.
    3. The flagging node and its target get a border and join the faded set
       of their kind.
    4. Flagging nodes, their direct targets and the backward closure of each
       flagging node are kept out of the plain faded set, unless the flagging
       node is itself a contradiction/walkback target. Without that exception
       a mutual contradiction would keep both subtrees visible forever.
    """
    preds = _predecessors(edges)

    rated = [n.id for n in nodes if n.rating in ("up", "down")]
    faded = backward_closure(rated, preds)

    contradiction_targets = {n.metadata.contradicts for n in nodes if n.metadata.contradicts}
    walkback_targets = {
        n.metadata.moves_goalposts_from for n in nodes if n.metadata.moves_goalposts_from
    }

    contradiction_faded = backward_closure(contradiction_targets, preds)
    walkback_faded = backward_closure(walkback_targets, preds)

    contradiction_border = {n.id for n in nodes if n.metadata.contradicts} | contradiction_targets
    walkback_border = {n.id for n in nodes if n.metadata.moves_goalposts_from} | walkback_targets
    contradiction_faded |= contradiction_border
    walkback_faded |= walkback_border

    flagging = [n for n in nodes if n.metadata.contradicts or n.metadata.moves_goalposts_from]
    if flagging:
        targets = contradiction_targets | walkback_targets
        flagging_ids = {n.id for n in flagging}
        direct_targets = {
            ref
            for n in flagging
            for ref in (n.metadata.contradicts, n.metadata.moves_goalposts_from)
            if ref
        }
        protected = backward_closure(flagging_ids - targets, preds)
        protected |= flagging_ids | direct_targets
        faded -= protected

    logger.debug(
        "Derived sets: %d faded, %d contradiction, %d walkback",
        len(faded),
        len(contradiction_faded),
        len(walkback_faded),
    )

    return DerivedSets(
        faded=frozenset(faded),
        contradiction_faded=frozenset(contradiction_faded),
        walkback_faded=frozenset(walkback_faded),
        contradiction_border=frozenset(contradiction_border),
        walkback_border=frozenset(walkback_border),
    )


def invalidated_ids(derived: DerivedSets) -> frozenset[str]:
    """Union of all three faded sets (borders included)."""
    return derived.faded | derived.contradiction_faded | derived.walkback_faded


def dimmed_ids(derived: DerivedSets) -> frozenset[str]:
    """Plain faded nodes shown at reduced opacity.

    Bordered and tinted nodes are drawn with a coloured background instead,
    so the three presentation sets never overlap.
    """
    bordered = derived.contradiction_border | derived.walkback_border
    return derived.faded - (tinted_ids(derived) | bordered)


def tinted_ids(derived: DerivedSets) -> frozenset[str]:
    """Non-border members of the contradiction/walkback faded sets."""
    return (derived.contradiction_faded - derived.contradiction_border) | (
        derived.walkback_faded - derived.walkback_border
    )
