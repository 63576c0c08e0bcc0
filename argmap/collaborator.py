"""Reasoning collaborator: build prompts, call the provider, validate replies."""

import json
import logging
import re
from typing import Any

from argmap.mapping import ValidationError, map_to_dict, parse_map
from argmap.models import ArgumentMap, ModelResponse, ModeratorAnalysis
from argmap.providers.base import AIProvider, TransportError
from argmap.tactics import TACTIC_KEYS
from config.config_loader import PromptsConfig

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\n?")

_FALLBACK_REPLY = "I couldn't generate a response."


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def decode_json(response: ModelResponse) -> dict[str, Any]:
    """Decode the JSON object in a provider reply.

    Raises:
        TransportError: If the reply was cut off at the token limit.
        ValidationError: If the reply is not a JSON object.
    """
    if response.truncated:
        raise TransportError(
            response.provider,
            "Response was too long and got cut off. The map may be too large; "
            "ask the moderator to summarise or prune some nodes.",
        )
    try:
        decoded = json.loads(_strip_fences(response.content))
    except json.JSONDecodeError as exc:
        logger.debug("Unparseable reply from %s: %s", response.provider, response.content)
        raise ValidationError(f"{response.provider} returned invalid JSON: {exc}") from exc
    if not isinstance(decoded, dict):
        raise ValidationError(f"{response.provider} returned JSON that is not an object")
    return decoded


def parse_analysis(raw: Any) -> ModeratorAnalysis | None:
    """Build the baseline leaning payload. Returns None when absent.

    Raises:
        ValidationError: If present but without a numeric leaning.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("moderator_analysis must be an object")
    leaning = raw.get("leaning")
    if isinstance(leaning, bool) or not isinstance(leaning, (int, float)):
        raise ValidationError("moderator_analysis.leaning must be a number")
    return ModeratorAnalysis(
        leaning=float(leaning),
        leaning_reason=str(raw.get("leaning_reason") or ""),
        style_a=str(raw.get("user_a_style") or ""),
        style_b=str(raw.get("user_b_style") or ""),
    )


def _render_map(argument_map: ArgumentMap) -> str:
    return json.dumps({"argument_map": map_to_dict(argument_map)}, indent=2, ensure_ascii=False)


async def request_map_update(
    provider: AIProvider,
    prompts: PromptsConfig,
    current_map: ArgumentMap,
    speaker: str,
    statement: str,
) -> tuple[ArgumentMap, ModeratorAnalysis | None]:
    """Ask the collaborator to fold a new statement into the map.

    Args:
        provider: The AIProvider acting as reasoning collaborator.
        prompts: Prompt templates from config.
        current_map: The map as currently displayed.
        speaker: Who made the statement ("Blue" or "Green").
        statement: The raw statement text.

    Returns:
        (validated replacement map, baseline analysis or None)

    Raises:
        TransportError: On provider failure or truncated output.
        ValidationError: If the reply is not a valid map.
    """
    system = prompts.update_system.format(tactic_keys=", ".join(TACTIC_KEYS))
    user = prompts.update_user.format(
        current_map=_render_map(current_map),
        speaker=speaker,
        statement=statement,
    )

    logger.info("Requesting map update for %s via %s", speaker, provider.name())
    response = await provider.generate(system, [{"role": "user", "content": user}])

    payload = decode_json(response)
    new_map = parse_map(payload, previous=current_map)
    analysis = parse_analysis(payload.get("moderator_analysis"))
    return new_map, analysis


async def request_chat(
    provider: AIProvider,
    prompts: PromptsConfig,
    current_map: ArgumentMap,
    conversation: list[dict[str, str]],
) -> tuple[str, ArgumentMap | None]:
    """Send the running moderator conversation; last turn is the new instruction.

    Returns:
        (reply text, validated replacement map or None when no edit was made)

    Raises:
        TransportError: On provider failure or truncated output.
        ValidationError: If the reply or its map is malformed.
    """
    system = prompts.chat_system.format(current_map=_render_map(current_map))

    logger.info("Sending moderator instruction via %s", provider.name())
    response = await provider.generate(system, conversation)

    payload = decode_json(response)
    reply = payload.get("reply") or _FALLBACK_REPLY
    raw_map = payload.get("argument_map")
    new_map = parse_map(raw_map) if raw_map else None
    return str(reply), new_map
