"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from argmap.models import (
    SIDE_A,
    SIDE_B,
    AgreedBy,
    ArgumentMap,
    Edge,
    ModelResponse,
    Node,
    NodeMetadata,
)
from argmap.providers.base import AIProvider
from argmap.session import DebateSession
from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig


def make_node(
    node_id: str,
    speaker: str = SIDE_A,
    node_type: str = "claim",
    content: str | None = None,
    rating: str | None = None,
    contradicts: str | None = None,
    moves_goalposts_from: str | None = None,
    agreed_by: str | None = None,
) -> Node:
    return Node(
        id=node_id,
        speaker=speaker,
        type=node_type,
        content=content if content is not None else f"Statement {node_id}",
        rating=rating,
        metadata=NodeMetadata(
            contradicts=contradicts,
            moves_goalposts_from=moves_goalposts_from,
            agreed_by=AgreedBy(speaker=agreed_by) if agreed_by else None,
        ),
    )


def make_edge(source: str, target: str, relationship: str = "supports") -> Edge:
    return Edge(id=f"e_{source}_{target}", source=source, target=target, relationship=relationship)


def node_dict(node_id: str, speaker: str = SIDE_A, node_type: str = "claim", **extra) -> dict:
    """Wire-format node as the collaborator would send it."""
    raw = {
        "id": node_id,
        "type": node_type,
        "content": f"Statement {node_id}",
        "speaker": speaker,
        "metadata": {"confidence": "medium", "tags": [], "tactics": []},
    }
    metadata = extra.pop("metadata", None)
    if metadata:
        raw["metadata"].update(metadata)
    raw.update(extra)
    return raw


def edge_dict(edge_id: str, source: str, target: str, relationship: str = "supports") -> dict:
    return {"id": edge_id, "from": source, "to": target, "relationship": relationship}


def reply(payload: dict, provider: str = "mock", truncated: bool = False) -> ModelResponse:
    """Provider response carrying ``payload`` as JSON text."""
    return ModelResponse(
        provider=provider,
        model="mock-model",
        content=json.dumps(payload),
        latency_sec=0.1,
        token_count=10,
        truncated=truncated,
    )


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        update_system="Map the debate. Tactics: {tactic_keys}",
        update_user="Current map:\n{current_map}\n\nNew statement from {speaker}:\n\"{statement}\"",
        chat_system="You moderate this map:\n{current_map}\nReply as {{\"reply\": ...}}",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        provider="claude",
        output_dir=tmp_path / "debates",
        leaning_weight=0.7,
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-5-20250929",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"claude": model_cfg},
        prompts=sample_prompts_config,
        available_providers={"claude"},
    )


@pytest.fixture
def debate_map() -> ArgumentMap:
    """C1 claim by Blue, P1 premise supporting it, O1 objection by Green."""
    return ArgumentMap(
        title="School uniforms",
        description="Should schools require uniforms?",
        nodes=[
            make_node("C1", SIDE_A, "claim"),
            make_node("P1", SIDE_A, "premise"),
            make_node("O1", SIDE_B, "objection"),
        ],
        edges=[
            make_edge("P1", "C1", "supports"),
            make_edge("O1", "C1", "opposes"),
        ],
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "{}") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=ModelResponse(
                provider=provider_name,
                model="mock-model",
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, system: str, messages: list[dict[str, str]]) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ModelResponse(
            provider=self._name,
            model="mock-model",
            content=self._response_content,
            latency_sec=0.1,
            token_count=10,
        )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def session(mock_provider: MockProvider, sample_prompts_config: PromptsConfig) -> DebateSession:
    return DebateSession(mock_provider, sample_prompts_config)
