"""Unit tests for the Ollama artifact generator.

Tests cover:
- JSON artifact generation with mocked httpx
- Unwrapping of list-shaped artifacts
- Malformed JSON handling
- Retry logic on 5xx, timeouts and connection errors
- Refinement and task assistance prompts
- Context manager requirement
"""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import Mock, patch

import httpx
import pytest

from catalyst.config import GeneratorConfig
from catalyst.generation.base import (
    ArtifactGenerator,
    GenerationAPIError,
    GenerationConnectionError,
    GenerationTimeoutError,
    MalformedArtifactError,
)
from catalyst.generation.ollama import OllamaGenerator, project_context
from catalyst.models.project import Project


def ollama_response(body: Any, status_code: int = 200) -> Mock:
    """Build a mock httpx response wrapping ``body`` the way Ollama does."""
    response = Mock()
    response.status_code = status_code
    text = body if isinstance(body, str) else json.dumps(body)
    response.json.return_value = {"response": text}
    response.text = text
    return response


@pytest.fixture
def config() -> GeneratorConfig:
    """Create test generator configuration with no retry delay."""
    return GeneratorConfig(
        url="http://localhost:11434",
        model="llama3.1",
        timeout_seconds=30,
        max_retries=2,
        initial_backoff=0.0,
    )


class TestOllamaGenerator:
    """Test OllamaGenerator with mocked httpx."""

    def test_satisfies_protocol(self, config: GeneratorConfig) -> None:
        assert isinstance(OllamaGenerator(config), ArtifactGenerator)

    @pytest.mark.asyncio
    async def test_generate_brainstorming_success(
        self, config: GeneratorConfig, idea_project: Project, fake_generator
    ) -> None:
        """Test successful JSON artifact generation."""
        body = fake_generator.responses["generate_brainstorming"]

        with patch("httpx.AsyncClient.post", return_value=ollama_response(body)) as post:
            async with OllamaGenerator(config) as generator:
                result = await generator.generate_brainstorming(idea_project)

        assert result == body
        payload = post.call_args.kwargs["json"]
        assert payload["model"] == "llama3.1"
        assert payload["format"] == "json"
        assert payload["stream"] is False
        assert "habit tracker" in payload["prompt"]

    @pytest.mark.asyncio
    async def test_list_artifact_is_unwrapped(
        self, config: GeneratorConfig, idea_project: Project, fake_generator
    ) -> None:
        plan = fake_generator.responses["generate_action_plan"]

        with patch(
            "httpx.AsyncClient.post", return_value=ollama_response({"phases": plan})
        ):
            async with OllamaGenerator(config) as generator:
                result = await generator.generate_action_plan(idea_project)

        assert result == plan

    @pytest.mark.asyncio
    async def test_missing_wrapper_key(
        self, config: GeneratorConfig, idea_project: Project
    ) -> None:
        with patch("httpx.AsyncClient.post", return_value=ollama_response({"tree": []})):
            async with OllamaGenerator(config) as generator:
                with pytest.raises(MalformedArtifactError, match="files"):
                    await generator.generate_file_structure(idea_project)

    @pytest.mark.asyncio
    async def test_malformed_json(self, config: GeneratorConfig, idea_project: Project) -> None:
        with patch(
            "httpx.AsyncClient.post", return_value=ollama_response("{not json")
        ):
            async with OllamaGenerator(config) as generator:
                with pytest.raises(MalformedArtifactError):
                    await generator.generate_research(idea_project)

    @pytest.mark.asyncio
    async def test_text_artifact_skips_json_mode(
        self, config: GeneratorConfig, idea_project: Project
    ) -> None:
        with patch(
            "httpx.AsyncClient.post", return_value=ollama_response("# Rules")
        ) as post:
            async with OllamaGenerator(config) as generator:
                result = await generator.generate_agent_rules(idea_project)

        assert result == "# Rules"
        assert "format" not in post.call_args.kwargs["json"]

    @pytest.mark.asyncio
    async def test_retry_on_500(
        self, config: GeneratorConfig, idea_project: Project
    ) -> None:
        """Test retry logic on server error."""
        fail_response = Mock()
        fail_response.status_code = 500
        fail_response.text = "Internal Server Error"

        with patch(
            "httpx.AsyncClient.post",
            side_effect=[fail_response, ollama_response("# Kickoff")],
        ) as post:
            async with OllamaGenerator(config) as generator:
                result = await generator.generate_kickoff_assets(idea_project)

        assert result == "# Kickoff"
        assert post.call_count == 2

    @pytest.mark.asyncio
    async def test_timeout_exhausts_retries(
        self, config: GeneratorConfig, idea_project: Project
    ) -> None:
        """Test timeout handling."""
        with patch(
            "httpx.AsyncClient.post", side_effect=httpx.TimeoutException("Timeout")
        ) as post:
            async with OllamaGenerator(config) as generator:
                with pytest.raises(GenerationTimeoutError):
                    await generator.generate_research(idea_project)

        assert post.call_count == config.max_retries + 1

    @pytest.mark.asyncio
    async def test_connection_error(
        self, config: GeneratorConfig, idea_project: Project
    ) -> None:
        """Test connection error handling."""
        with patch(
            "httpx.AsyncClient.post",
            side_effect=httpx.ConnectError("Connection failed"),
        ):
            async with OllamaGenerator(config) as generator:
                with pytest.raises(GenerationConnectionError, match="localhost:11434"):
                    await generator.generate_research(idea_project)

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(
        self, config: GeneratorConfig, idea_project: Project
    ) -> None:
        """Test API error handling."""
        error_response = Mock()
        error_response.status_code = 404
        error_response.text = "model not found"

        with patch("httpx.AsyncClient.post", return_value=error_response) as post:
            async with OllamaGenerator(config) as generator:
                with pytest.raises(GenerationAPIError, match="404"):
                    await generator.generate_research(idea_project)

        assert post.call_count == 1

    @pytest.mark.asyncio
    async def test_context_manager_required(
        self, config: GeneratorConfig, idea_project: Project
    ) -> None:
        """Test that client requires context manager."""
        generator = OllamaGenerator(config)

        with pytest.raises(RuntimeError, match="async context manager"):
            await generator.generate_research(idea_project)


class TestRefinementAndAssistance:
    """Test refinement and task prompts."""

    @pytest.mark.asyncio
    async def test_refine_list_section_unwraps_items(
        self, config: GeneratorConfig, planned_project: Project
    ) -> None:
        revised = [{"name": "app", "type": "folder", "children": []}]

        with patch(
            "httpx.AsyncClient.post", return_value=ollama_response({"items": revised})
        ) as post:
            async with OllamaGenerator(config) as generator:
                result = await generator.refine_section(
                    "Files", planned_project.file_structure, "flatten it"
                )

        assert result == revised
        prompt = post.call_args.kwargs["json"]["prompt"]
        assert "flatten it" in prompt
        assert '"README.md"' in prompt

    @pytest.mark.asyncio
    async def test_refine_text_section(
        self, config: GeneratorConfig, planned_project: Project
    ) -> None:
        with patch(
            "httpx.AsyncClient.post", return_value=ollama_response("Short rules.")
        ):
            async with OllamaGenerator(config) as generator:
                result = await generator.refine_section(
                    "Agent Rules", planned_project.agent_rules, "shorter"
                )

        assert result == "Short rules."

    @pytest.mark.asyncio
    async def test_checklist_items_are_strings(
        self, config: GeneratorConfig, planned_project: Project
    ) -> None:
        task = planned_project.action_plan[0].tasks[0]

        with patch(
            "httpx.AsyncClient.post",
            return_value=ollama_response({"items": ["Repo created", 2]}),
        ):
            async with OllamaGenerator(config) as generator:
                items = await generator.generate_checklist(task, planned_project)

        assert items == ["Repo created", "2"]


class TestProjectContext:
    """Test prompt context rendering."""

    def test_omits_bookkeeping_fields(self, planned_project: Project) -> None:
        context = project_context(planned_project)

        assert "habit tracker" in context
        assert "lastUpdated" not in context
        assert "snapshots" not in context
        assert '"schema"' in context
