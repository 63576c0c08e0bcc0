"""Collaborator health check: confirm the provider answers, and answers in JSON."""

import asyncio
import logging

from argmap.collaborator import decode_json
from argmap.mapping import ValidationError
from argmap.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_SYSTEM = "You are a connectivity check. Respond with JSON only."
_PING_PROMPT = 'Reply with exactly this JSON object: {"ok": true}'
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, provider: AIProvider) -> tuple[str, bool, str]:
    """Ping a single provider. Returns (name, ok, error_message)."""
    try:
        response = await asyncio.wait_for(
            provider.generate(_PING_SYSTEM, [{"role": "user", "content": _PING_PROMPT}]),
            timeout=_TIMEOUT_SEC,
        )
        decode_json(response)
    except ValidationError as exc:
        return name, False, f"Replies are not usable JSON: {exc}"
    except Exception as exc:
        logger.debug("Health check failed for %s: %r", name, exc)
        return name, False, str(exc) or type(exc).__name__
    return name, True, ""


async def run_health_checks(
    providers: dict[str, AIProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel.

    Returns:
        Dict mapping provider name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    return {name: (ok, err) for name, ok, err in results}
