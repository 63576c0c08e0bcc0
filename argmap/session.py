"""Debate session: one map, one history, one collaborator request at a time."""

import logging

from argmap.collaborator import request_chat, request_map_update
from argmap.history import History
from argmap.invalidation import compute_derived_sets
from argmap.leaning import DEFAULT_WEIGHT, LeaningReport, compute_leaning
from argmap.mapping import (
    ValidationError,
    apply_rating,
    apply_replacement,
    new_node_ids,
    node_by_id,
    speaker_summary,
)
from argmap.models import (
    SIDE_A,
    SIDE_B,
    ArgumentMap,
    ChatReply,
    Concession,
    DerivedSets,
    ModeratorAnalysis,
    Snapshot,
    SubmissionResult,
)
from argmap.providers.base import AIProvider, TransportError
from argmap.tree import TreeItem, build_forest, toggle_collapsed
from config.config_loader import PromptsConfig

logger = logging.getLogger(__name__)


class ConcurrentSubmissionError(Exception):
    """Raised when a collaborator request is submitted while another is in flight."""


def _detect_concessions(old: ArgumentMap, new: ArgumentMap, speaker: str) -> list[Concession]:
    """Nodes newly rated up by the collaborator on behalf of ``speaker``."""
    previously_up = {n.id for n in old.nodes if n.rating == "up"}
    found: list[Concession] = []
    for node in new.nodes:
        agreed = node.metadata.agreed_by
        if node.rating != "up" or node.id in previously_up or agreed is None:
            continue
        if agreed.speaker != speaker:
            continue
        found.append(
            Concession(
                node_id=node.id,
                node_speaker=node.speaker,
                conceding_speaker=speaker,
                content=node.content,
                agreed_text=agreed.text,
            )
        )
    return found


class DebateSession:
    """Owns the map history for one debate and serialises collaborator calls.

    Every committed mutation (statement, moderator edit, rating toggle) pushes
    exactly one snapshot. Derived sets, the leaning report and the forest are
    recomputed from the current snapshot on every read.

    Collaborator calls are guarded by a busy flag and a request token. The
    token is bumped by each submission, by ``cancel_pending()`` and by
    ``reset()``, and a reply carrying an outdated token is dropped.
    """

    def __init__(
        self,
        provider: AIProvider,
        prompts: PromptsConfig,
        leaning_weight: float = DEFAULT_WEIGHT,
        initial: Snapshot | None = None,
        current_speaker: str = SIDE_A,
    ) -> None:
        self._provider = provider
        self._prompts = prompts
        self._leaning_weight = leaning_weight
        self._history = History(initial or Snapshot(map=ArgumentMap()))
        self._current_speaker = current_speaker
        self._busy = False
        self._token = 0
        self._collapsed: frozenset[str] = frozenset()
        self._conversation: list[dict[str, str]] = []
        self._statements: dict[str, str] = {}

    # --- read-only projections ---

    @property
    def history(self) -> History:
        return self._history

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def current_speaker(self) -> str:
        return self._current_speaker

    @property
    def current_map(self) -> ArgumentMap:
        return self._history.current.map

    @property
    def analysis(self) -> ModeratorAnalysis | None:
        return self._history.current.analysis

    @property
    def conversation(self) -> list[dict[str, str]]:
        return list(self._conversation)

    @property
    def collapsed(self) -> frozenset[str]:
        return self._collapsed

    @property
    def derived(self) -> DerivedSets:
        current = self.current_map
        return compute_derived_sets(current.nodes, current.edges)

    def leaning(self) -> LeaningReport:
        return compute_leaning(self.current_map, self.derived, self.analysis, self._leaning_weight)

    def forest(self) -> list[TreeItem]:
        current = self.current_map
        return build_forest(current.nodes, current.edges, self._collapsed)

    def original_statement(self, node_id: str) -> str | None:
        """The statement whose submission introduced ``node_id``, if known."""
        return self._statements.get(node_id)

    def speaker_summary(self, speaker: str | None = None) -> str | None:
        return speaker_summary(self.current_map, speaker or self._current_speaker)

    # --- collaborator calls ---

    def _begin(self) -> int:
        if self._busy:
            raise ConcurrentSubmissionError("A request is already in progress; wait for it to finish.")
        self._busy = True
        self._token += 1
        return self._token

    def _finish(self, token: int) -> None:
        if token == self._token:
            self._busy = False

    def _is_stale(self, token: int) -> bool:
        if token != self._token:
            logger.warning("Discarding stale collaborator reply (token %d, current %d)", token, self._token)
            return True
        return False

    async def submit_statement(self, statement: str) -> SubmissionResult | None:
        """Send the current speaker's statement to the collaborator and commit the result.

        On success the turn passes to the other side. On failure nothing
        changes and the error propagates; the caller may retry with the same
        statement.

        Returns:
            SubmissionResult, or None if the reply was superseded before it arrived.

        Raises:
            ConcurrentSubmissionError: If a request is already in flight.
            TransportError: On provider failure.
            ValidationError: If the collaborator's map is malformed.
        """
        token = self._begin()
        speaker = self._current_speaker
        before = self.current_map
        try:
            new_map, analysis = await request_map_update(
                self._provider, self._prompts, before, speaker, statement
            )
        except (TransportError, ValidationError):
            if self._is_stale(token):
                return None
            raise
        finally:
            self._finish(token)

        if self._is_stale(token):
            return None

        merged = apply_replacement(before, new_map)
        self._history.push(Snapshot(map=merged, analysis=analysis or self.analysis))

        added = new_node_ids(before, merged)
        for node_id in added:
            self._statements[node_id] = statement
        concessions = _detect_concessions(before, merged, speaker)
        self._current_speaker = SIDE_B if speaker == SIDE_A else SIDE_A

        logger.info(
            "Committed statement from %s: %d new nodes, %d concessions",
            speaker,
            len(added),
            len(concessions),
        )
        return SubmissionResult(speaker=speaker, new_node_ids=added, concessions=concessions)

    async def send_instruction(self, instruction: str) -> ChatReply | None:
        """Talk to the moderator. Does not advance the turn.

        The conversation history only grows when the exchange succeeds. A map
        returned with the reply is validated and committed as one snapshot.

        Raises:
            ConcurrentSubmissionError: If a request is already in flight.
            TransportError: On provider failure.
            ValidationError: If the reply or its map is malformed.
        """
        token = self._begin()
        conversation = [*self._conversation, {"role": "user", "content": instruction}]
        before = self.current_map
        try:
            reply, new_map = await request_chat(self._provider, self._prompts, before, conversation)
        except (TransportError, ValidationError):
            if self._is_stale(token):
                return None
            raise
        finally:
            self._finish(token)

        if self._is_stale(token):
            return None

        self._conversation = [*conversation, {"role": "assistant", "content": reply}]
        if new_map is None:
            return ChatReply(reply=reply)

        self._history.push(Snapshot(map=apply_replacement(before, new_map), analysis=self.analysis))
        logger.info("Committed moderator edit: %d nodes", len(new_map.nodes))
        return ChatReply(reply=reply, map_updated=True)

    def cancel_pending(self) -> None:
        """Abandon the in-flight request; its reply will be discarded."""
        if self._busy:
            logger.info("Abandoning in-flight request")
        self._token += 1
        self._busy = False

    # --- local actions ---

    def _require_idle(self, action: str) -> None:
        # An in-flight reply is built from the map as it was when sent.
        if self._busy:
            raise ConcurrentSubmissionError(f"Cannot {action} while a request is in progress.")

    def rate(self, node_id: str, rating: str) -> bool:
        """Toggle a rating on behalf of the current speaker.

        Returns True when a snapshot was committed, False for an unknown node.

        Raises:
            ConcurrentSubmissionError: If a collaborator request is in flight.
        """
        self._require_idle("rate a node")
        before = self.current_map
        updated = apply_rating(before, node_id, rating, self._current_speaker)
        if updated is before:
            return False
        self._history.push(Snapshot(map=updated, analysis=self.analysis))
        return True

    def dismiss_concession(self, node_id: str) -> bool:
        """Reject a detected concession by clearing the node's up rating."""
        self._require_idle("dismiss a concession")
        node = node_by_id(self.current_map, node_id)
        if node is None or node.rating != "up":
            return False
        return self.rate(node_id, "up")

    def undo(self) -> bool:
        """Step back one snapshot. No-op while a request is in flight."""
        if self._busy:
            return False
        return self._history.undo()

    def redo(self) -> bool:
        if self._busy:
            return False
        return self._history.redo()

    def skip_turn(self) -> str:
        """Pass the turn to the other side without a statement. Nothing is committed.

        Returns the speaker whose turn it now is.

        Raises:
            ConcurrentSubmissionError: If a collaborator request is in flight.
        """
        self._require_idle("skip a turn")
        skipped = self._current_speaker
        self._current_speaker = SIDE_B if skipped == SIDE_A else SIDE_A
        logger.info("%s passed; %s to speak", skipped, self._current_speaker)
        return self._current_speaker

    def toggle_collapsed(self, node_id: str) -> None:
        self._collapsed = toggle_collapsed(self._collapsed, node_id)

    def reset(self) -> None:
        """Start over with an empty map. Any in-flight reply will be discarded."""
        self._token += 1
        self._busy = False
        self._history = History(Snapshot(map=ArgumentMap()))
        self._current_speaker = SIDE_A
        self._collapsed = frozenset()
        self._conversation = []
        self._statements = {}
        logger.info("Session reset")
