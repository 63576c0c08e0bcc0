"""Click CLI: loads config, picks the collaborator provider, runs the debate loop."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from argmap.healthcheck import run_health_checks
from argmap.mapping import ValidationError, node_by_id
from argmap.models import SubmissionResult
from argmap.output import load_from_file, print_leaning, print_node_detail, print_tree, save_to_file
from argmap.providers.anthropic import AnthropicProvider
from argmap.providers.base import AIProvider, TransportError
from argmap.providers.gemini import GeminiProvider
from argmap.providers.openai_provider import OpenAIProvider
from argmap.session import ConcurrentSubmissionError, DebateSession
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "google-genai": GeminiProvider,
}

_HELP = """\
Type a statement to speak for the current side. Commands:
  /chat TEXT     talk to the moderator (corrections, questions)
  /up ID         agree with a node (again to clear)
  /down ID       retract a node (again to clear)
  /undo, /redo   step through history
  /skip          pass the turn to the other side
  /collapse ID   fold or unfold a node's children in the list
  /tree          show the map      /gauge   show the moderator gauge
  /node ID       show one node     /save    save the debate
  /help          this text         /quit    exit"""


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_provider(config: AppConfig, name: str) -> AIProvider:
    """Instantiate the named provider. Raises click.ClickException when unusable."""
    if name not in config.models:
        raise click.ClickException(f"Unknown provider '{name}'. Known: {', '.join(sorted(config.models))}")
    if name not in config.available_providers:
        raise click.ClickException(f"No API key for '{name}'. Set {config.models[name].api_key_env} in .env.")
    model_cfg = config.models[name]
    if model_cfg.sdk not in PROVIDER_CLASSES:
        raise click.ClickException(f"Provider '{name}' uses unsupported sdk '{model_cfg.sdk}'")
    return PROVIDER_CLASSES[model_cfg.sdk](model_cfg)


def _check_provider(provider: AIProvider) -> None:
    """Ping the collaborator and ask whether to continue if it fails."""
    console.print("\n[bold]Checking provider...[/bold]")
    results = asyncio.run(run_health_checks({provider.name(): provider}))
    ok, err = results[provider.name()]
    if ok:
        console.print(f"  [green]OK  [/green] {provider.name()} ({provider.model_string()})\n")
        return
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {provider.name()}: {short_err}")
    if not click.confirm("Continue anyway?", default=False):
        sys.exit(1)


def _parse_command(line: str) -> tuple[str, str]:
    """Split an input line into (command, argument).

    Plain text is a statement: ("say", text). "/up node_3" -> ("up", "node_3").
    """
    line = line.strip()
    if not line:
        return "", ""
    if not line.startswith("/"):
        return "say", line
    command, _, arg = line[1:].partition(" ")
    return command.lower(), arg.strip()


def _report_submission(session: DebateSession, result: SubmissionResult) -> None:
    if result.new_node_ids:
        console.print(f"[dim]New nodes: {', '.join(result.new_node_ids)}[/dim]")
    for concession in result.concessions:
        console.print(
            f"\n[bold]Concession detected:[/bold] {concession.conceding_speaker} "
            f"appears to agree with {concession.node_speaker}'s statement:"
        )
        console.print(f"  [italic]{concession.content}[/italic]")
        if concession.agreed_text:
            console.print(f'  "{concession.agreed_text}"')
        if not click.confirm("Concede this point?", default=True):
            session.dismiss_concession(concession.node_id)


async def _handle_line(session: DebateSession, line: str, output_dir: Path) -> bool:
    """Run one input line against the session. Returns False to stop the loop."""
    command, arg = _parse_command(line)

    if command == "":
        return True
    if command in ("quit", "exit"):
        return False
    if command == "help":
        console.print(_HELP)
    elif command == "say":
        result = await session.submit_statement(arg)
        if result is not None:
            _report_submission(session, result)
            print_tree(session.forest(), session.derived)
    elif command == "chat":
        if not arg:
            console.print("[yellow]Usage: /chat TEXT[/yellow]")
            return True
        reply = await session.send_instruction(arg)
        if reply is not None:
            console.print(f"[magenta]Moderator:[/magenta] {reply.reply}")
            if reply.map_updated:
                print_tree(session.forest(), session.derived)
    elif command in ("up", "down"):
        if not session.rate(arg, command):
            console.print(f"[yellow]No node '{arg}'[/yellow]")
        else:
            print_tree(session.forest(), session.derived)
    elif command == "undo":
        if session.undo():
            print_tree(session.forest(), session.derived)
        else:
            console.print("[dim]Nothing to undo.[/dim]")
    elif command == "redo":
        if session.redo():
            print_tree(session.forest(), session.derived)
        else:
            console.print("[dim]Nothing to redo.[/dim]")
    elif command == "collapse":
        if node_by_id(session.current_map, arg) is None:
            console.print(f"[yellow]No node '{arg}'[/yellow]")
        else:
            session.toggle_collapsed(arg)
            print_tree(session.forest(), session.derived)
    elif command == "skip":
        previous = session.current_speaker
        console.print(f"[dim]{previous} passes. {session.skip_turn()} to speak.[/dim]")
    elif command == "tree":
        print_tree(session.forest(), session.derived)
    elif command == "gauge":
        print_leaning(session.leaning(), session.analysis)
    elif command == "node":
        node = node_by_id(session.current_map, arg)
        if node is None:
            console.print(f"[yellow]No node '{arg}'[/yellow]")
        else:
            print_node_detail(node, session.original_statement(arg), session.derived)
    elif command == "save":
        saved = save_to_file(session, output_dir)
        console.print(f"[dim]Saved to: {saved}[/dim]")
    else:
        console.print(f"[yellow]Unknown command '/{command}'. Type /help.[/yellow]")
    return True


async def _run_loop(session: DebateSession, output_dir: Path) -> None:
    console.print(_HELP + "\n")
    while True:
        summary = session.speaker_summary()
        if summary:
            console.print(f"[dim]{session.current_speaker}'s position: {summary}[/dim]")
        try:
            line = await asyncio.to_thread(console.input, f"[bold]{session.current_speaker}>[/bold] ")
        except (EOFError, KeyboardInterrupt):
            break
        try:
            if not await _handle_line(session, line, output_dir):
                break
        except (TransportError, ValidationError) as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}\n[dim]Nothing was changed; try again.[/dim]")
        except ConcurrentSubmissionError as exc:
            console.print(f"[yellow]{exc}[/yellow]")


@click.command()
@click.option("--provider", "provider_name", default=None, help="Which model acts as collaborator (default: from config)")
@click.option("--resume", "resume_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Continue a debate saved with /save")
@click.option("--output", "output_path", default=None, help="Directory for saved debates (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    provider_name: str | None,
    resume_file: str | None,
    output_path: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Argument mapper -- two sides debate, an AI maps the arguments.

    \b
    Examples:
      argmap
      argmap --provider openai
      argmap --resume debates/20260101_120000_renewable-energy.md
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    provider = _build_provider(config, provider_name or config.defaults.provider)
    output_dir = Path(output_path) if output_path else config.defaults.output_dir

    if not skip_health_check:
        _check_provider(provider)

    session = DebateSession(provider, config.prompts, leaning_weight=config.defaults.leaning_weight)
    if resume_file:
        try:
            snapshot, speaker = load_from_file(Path(resume_file))
        except ValidationError as exc:
            console.print(f"[bold red]Cannot resume:[/bold red] {exc}")
            sys.exit(1)
        session = DebateSession(
            provider,
            config.prompts,
            leaning_weight=config.defaults.leaning_weight,
            initial=snapshot,
            current_speaker=speaker,
        )
        print_tree(session.forest(), session.derived)

    asyncio.run(_run_loop(session, output_dir))


if __name__ == "__main__":
    main()
