"""Rich console output and markdown save/load for debates."""

import logging
import re
from datetime import datetime
from pathlib import Path

import frontmatter
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from argmap.collaborator import parse_analysis
from argmap.invalidation import dimmed_ids
from argmap.leaning import LeaningReport
from argmap.mapping import ValidationError, map_to_dict, parse_map
from argmap.models import SIDE_A, SIDE_B, DerivedSets, ModeratorAnalysis, Node, Snapshot
from argmap.session import DebateSession
from argmap.tactics import known_tactics
from argmap.tree import TreeItem, visible_rows

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_SPEAKER_STYLES = {SIDE_A: "bold blue", SIDE_B: "bold green"}
_RATING_ICONS = {"up": " 👍", "down": " 👎"}
_GAUGE_WIDTH = 41


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _row_label(item: TreeItem) -> str:
    node = item.node
    label = f"{node.id} [{node.type}] {node.speaker}: {node.content}"
    label += _RATING_ICONS.get(node.rating or "", "")
    symbols = "".join(t.symbol for t in known_tactics(node.metadata.tactics))
    if symbols:
        label += f" {symbols}"
    if item.cross_link_count:
        label += f" ⇄{item.cross_link_count}"
    if item.collapsed and item.descendant_count:
        label += f" (+{item.descendant_count} hidden)"
    return label


def format_tree_lines(forest: list[TreeItem]) -> list[str]:
    """Plain indented lines for the visible rows of a forest."""
    return [f"{'  ' * item.depth}- {_row_label(item)}" for item in visible_rows(forest)]


def _row_style(item: TreeItem, derived: DerivedSets, dimmed: frozenset[str]) -> str:
    node_id = item.node.id
    if node_id in derived.contradiction_border:
        return "bold red on grey11"
    if node_id in derived.walkback_border:
        return "bold dark_orange on grey11"
    if node_id in derived.contradiction_faded:
        return "dim red"
    if node_id in derived.walkback_faded:
        return "dim dark_orange"
    if node_id in dimmed:
        return "dim"
    return _SPEAKER_STYLES.get(item.node.speaker, "magenta")


def print_tree(forest: list[TreeItem], derived: DerivedSets) -> None:
    """Print the list view of the map, styled by derived state."""
    console.print(Rule("[bold cyan]Argument Map[/bold cyan]"))
    if not forest:
        console.print(Text("No claims yet.", style="dim"))
        return
    dimmed = dimmed_ids(derived)
    for item in visible_rows(forest):
        console.print(Text("  " * item.depth + _row_label(item), style=_row_style(item, derived, dimmed)))


def _gauge_bar(value: float) -> str:
    pos = round((value + 1) / 2 * (_GAUGE_WIDTH - 1))
    return "".join("●" if i == pos else "─" for i in range(_GAUGE_WIDTH))


def print_leaning(report: LeaningReport, analysis: ModeratorAnalysis | None) -> None:
    """Print the moderator gauge with reasoning, styles and agreements."""
    console.print(Rule("[bold cyan]Moderator[/bold cyan]"))
    console.print(f"[blue]{SIDE_A}[/blue] {_gauge_bar(report.displayed)} [green]{SIDE_B}[/green]")
    console.print(
        Text(
            f"{report.label} ({report.displayed:+.2f}) | "
            f"baseline {report.baseline:+.2f}, adjustment {report.adjustment:+.2f}",
            style="dim",
        )
    )
    if report.reason:
        console.print(report.reason)
    if analysis is not None:
        if analysis.style_a:
            console.print(f"[blue]{SIDE_A}'s style:[/blue] {analysis.style_a}")
        if analysis.style_b:
            console.print(f"[green]{SIDE_B}'s style:[/green] {analysis.style_b}")
    for agreement in report.agreements:
        by = f" (agreed by {agreement.agreed_by})" if agreement.agreed_by else ""
        console.print(f"  ✔ {agreement.node_speaker}: {agreement.content}{by}")


def print_node_detail(node: Node, original: str | None, derived: DerivedSets) -> None:
    """Print everything known about one node."""
    meta = node.metadata
    lines: list[str] = [f"[bold]{node.type}[/bold] by {node.speaker}"]
    if meta.confidence:
        lines[0] += f" | confidence: {meta.confidence}"
    if node.id in derived.faded and meta.agreed_by:
        lines.append(f"[green]Agreed by {meta.agreed_by.speaker}[/green]")
        if meta.agreed_by.text:
            lines.append(f'  "{meta.agreed_by.text}"')
    if original:
        lines.append(f"[dim]Original statement:[/dim] {original}")
    lines.append(node.content)
    for key in meta.tactics:
        tactics = known_tactics([key])
        if not tactics:
            continue
        reason = meta.tactic_reasons.get(key, "")
        lines.append(f"{tactics[0].symbol} {tactics[0].name}: {reason}".rstrip(": "))
    if meta.contradicts:
        lines.append(f"[red]Contradicts {meta.contradicts}[/red]")
    if meta.moves_goalposts_from:
        lines.append(f"[dark_orange]Moves goalposts from {meta.moves_goalposts_from}[/dark_orange]")
    if meta.tags:
        lines.append("[dim]" + ", ".join(meta.tags) + "[/dim]")
    console.print(Panel("\n".join(lines), title=node.id, border_style="dim"))


def _analysis_to_dict(analysis: ModeratorAnalysis | None) -> dict | None:
    if analysis is None:
        return None
    return {
        "leaning": analysis.leaning,
        "leaning_reason": analysis.leaning_reason,
        "user_a_style": analysis.style_a,
        "user_b_style": analysis.style_b,
    }


def save_to_file(session: DebateSession, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the current debate state as markdown with YAML frontmatter.

    The frontmatter holds the map and the collaborator's analysis so the
    debate can be resumed; derived sets are never written.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    current = session.current_map
    report = session.leaning()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(current.title or "debate")
    filepath = output_dir / f"{timestamp}_{slug or 'debate'}.md"

    body: list[str] = [
        f"# {current.title or 'Untitled debate'}",
        "",
        current.description,
        "",
        f"**Leaning:** {report.label} ({report.displayed:+.2f})",
        f"**Next speaker:** {session.current_speaker}",
        "",
        "## Map",
        "",
        *format_tree_lines(session.forest()),
        "",
    ]
    if report.reason:
        body += ["## Moderator", "", report.reason, ""]

    post = frontmatter.Post(
        "\n".join(body),
        title=current.title,
        saved=datetime.now().isoformat(timespec="seconds"),
        current_speaker=session.current_speaker,
        leaning=round(report.displayed, 3),
        analysis=_analysis_to_dict(session.analysis),
        argument_map=map_to_dict(current),
    )
    filepath.write_text(frontmatter.dumps(post), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath


def load_from_file(path: Path) -> tuple[Snapshot, str]:
    """Read a saved debate back.

    Returns:
        (snapshot to start a session from, speaker whose turn it is)

    Raises:
        ValidationError: If the file carries no valid map.
    """
    post = frontmatter.load(str(path))
    raw_map = post.metadata.get("argument_map")
    if raw_map is None:
        raise ValidationError(f"{path.name}: no argument_map in frontmatter")
    snapshot = Snapshot(
        map=parse_map(raw_map),
        analysis=parse_analysis(post.metadata.get("analysis")),
    )
    speaker = post.metadata.get("current_speaker")
    if speaker not in (SIDE_A, SIDE_B):
        speaker = SIDE_A
    logger.info("Loaded debate from %s (%d nodes)", path, len(snapshot.map.nodes))
    return snapshot, speaker
