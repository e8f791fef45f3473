"""Ollama-backed artifact generator.

This module provides an async HTTP generator talking to the Ollama
``/api/generate`` endpoint. Structured artifacts are requested with
``format: "json"`` and parsed from the response text; plain-text artifacts
(agent rules, kickoff assets, implementation guides) are returned as-is.
Transient failures are retried with exponential backoff.

Example usage:
    >>> from catalyst.config import GeneratorConfig
    >>> async with OllamaGenerator(GeneratorConfig(model="llama3.1")) as generator:
    ...     ideas = await generator.generate_brainstorming(project)
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import structlog
from pydantic_core import to_jsonable_python

from catalyst.config import GeneratorConfig
from catalyst.generation.base import (
    GenerationAPIError,
    GenerationConnectionError,
    GenerationError,
    GenerationTimeoutError,
    MalformedArtifactError,
)
from catalyst.models.artifacts import ResearchReport
from catalyst.models.plan import Task
from catalyst.models.project import Project

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a senior software architect helping plan a new software project. "
    "Answer with JSON only when asked for JSON. Use camelCase keys."
)

# Per-artifact instructions. {context} is the JSON project summary.
PROMPTS: dict[str, str] = {
    "brainstorming": (
        "Brainstorm the idea below. Return JSON with keys questions (list of "
        "strings), usps (list of strings), personas (list of {{role, description, "
        "painPoints}}), userJourneys and features (list of strings).\n{context}"
    ),
    "research": (
        "Research the market for the project below. Return JSON with keys summary, "
        "sources (list of {{uri, title}}) and competitors (list of {{name, url, "
        "strengths, weaknesses, priceModel}}).\n{context}"
    ),
    "architecture": (
        "Design the architecture. Return JSON with keys stack ({{frontend, backend, "
        "database, styling, deployment, rationale}}), patterns, dependencies "
        "(list of {{name, description}}) and diagram (mermaid).\n{context}"
    ),
    "cost_estimation": (
        "Estimate cost and effort. Return JSON with keys monthlyInfrastructure "
        "(list of {{service, estimatedCost, reason}}), totalProjectHours, "
        "suggestedTeamSize and risks (list of {{description, impact}}).\n{context}"
    ),
    "schema": (
        "Design the data model. Return JSON with keys tables (list of {{name, "
        "description, columns: [{{name, type, constraints, description}}]}}), "
        "mermaidChart, prismaSchema and sqlSchema.\n{context}"
    ),
    "file_structure": (
        "Lay out the repository. Return JSON {{\"files\": [...]}} where each entry "
        "is {{name, type: \"file\"|\"folder\", description, children}}.\n{context}"
    ),
    "design_system": (
        "Define the design system. Return JSON with keys colorPalette (list of "
        "{{name, hex, usage}}), typography (list of {{role, fontFamily, size}}), "
        "coreComponents and layoutStrategy.\n{context}"
    ),
    "api_spec": (
        "Specify the HTTP API. Return JSON with keys endpoints (list of {{method, "
        "path, summary, requestBody, responseSuccess}}) and authMechanism.\n{context}"
    ),
    "security_context": (
        "Define security policies and QA. Return JSON with keys policies (list of "
        "{{name, description, implementationHint}}), testingStrategy (list of "
        "{{name, type: Unit|Integration|E2E, description}}) and "
        "complianceChecklist.\n{context}"
    ),
    "agent_rules": (
        "Write a markdown rules file for AI coding agents working on the project "
        "below, covering stack, conventions, security and testing.\n{context}"
    ),
    "action_plan": (
        "Create an implementation plan. Return JSON {{\"phases\": [...]}} where each "
        "entry is {{phase_name, tasks: [{{description, estimatedDuration, "
        "priority: High|Medium|Low, role}}]}}.\n{context}"
    ),
    "kickoff_assets": (
        "Write a markdown kickoff brief for the team starting the project "
        "below.\n{context}"
    ),
}

# JSON wrapper keys for list-shaped artifacts
LIST_WRAPPERS: dict[str, str] = {
    "file_structure": "files",
    "action_plan": "phases",
}


class OllamaGenerator:
    """Async artifact generator for the Ollama generate API.

    Attributes:
        config: Generator configuration containing URL, model, and retry settings
    """

    def __init__(self, config: GeneratorConfig) -> None:
        """Initialize the generator.

        Args:
            config: GeneratorConfig instance with connection settings
        """
        self.config = config
        self._client: httpx.AsyncClient | None = None
        logger.info(
            "ollama_generator_initialized",
            url=config.url,
            model=config.model,
            timeout=config.timeout_seconds,
        )

    async def __aenter__(self) -> OllamaGenerator:
        self._client = httpx.AsyncClient(
            base_url=self.config.url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Return the active HTTP client.

        Raises:
            RuntimeError: If called outside async context manager
        """
        if self._client is None:
            raise RuntimeError("OllamaGenerator must be used as async context manager")
        return self._client

    async def _generate(self, prompt: str, json_mode: bool) -> str:
        """Send one prompt and return the raw response text.

        Retries on timeouts, connection errors and 5xx status codes.

        Raises:
            GenerationTimeoutError: If the request times out after all retries
            GenerationConnectionError: If unable to connect after all retries
            GenerationAPIError: If the API returns an error response
        """
        client = self._get_client()
        max_retries = self.config.max_retries
        payload: dict[str, Any] = {
            "model": self.config.model,
            "system": SYSTEM_PROMPT,
            "prompt": prompt,
            "stream": False,
        }
        if json_mode:
            payload["format"] = "json"

        for attempt in range(max_retries + 1):
            backoff = self.config.initial_backoff * (2**attempt)
            try:
                logger.debug(
                    "ollama_generate_request",
                    attempt=attempt + 1,
                    max_retries=max_retries + 1,
                    prompt_length=len(prompt),
                    json_mode=json_mode,
                )

                response = await client.post("/api/generate", json=payload)

                if response.status_code == 200:
                    text = response.json().get("response")
                    if not isinstance(text, str):
                        raise GenerationAPIError(
                            "Invalid response format: missing 'response' field"
                        )
                    logger.info(
                        "ollama_generate_completed",
                        response_length=len(text),
                        attempt=attempt + 1,
                    )
                    return text

                error_msg = f"API error: HTTP {response.status_code}: {response.text}"

                if 500 <= response.status_code < 600 and attempt < max_retries:
                    logger.warning(
                        "ollama_server_error_retry",
                        status_code=response.status_code,
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue

                raise GenerationAPIError(error_msg)

            except httpx.TimeoutException as e:
                if attempt < max_retries:
                    logger.warning(
                        "ollama_timeout_retry",
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                        error=str(e),
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.error(
                    "ollama_timeout_exhausted",
                    max_retries=max_retries,
                    timeout_seconds=self.config.timeout_seconds,
                )
                raise GenerationTimeoutError(
                    f"Request timed out after {max_retries} retries"
                ) from e

            except (httpx.ConnectError, httpx.NetworkError) as e:
                if attempt < max_retries:
                    logger.warning(
                        "ollama_connection_error_retry",
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                        error=str(e),
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.error(
                    "ollama_connection_exhausted",
                    url=self.config.url,
                    max_retries=max_retries,
                )
                raise GenerationConnectionError(
                    f"Failed to connect to Ollama at {self.config.url}"
                ) from e

        raise GenerationError("Unexpected retry loop exit")

    async def _generate_json(self, prompt: str, unwrap: str | None = None) -> Any:
        text = await self._generate(prompt, json_mode=True)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedArtifactError(f"Response is not valid JSON: {e}") from e
        if unwrap is not None:
            if not isinstance(data, dict) or unwrap not in data:
                raise MalformedArtifactError(f"Response is missing the '{unwrap}' key")
            data = data[unwrap]
        return data

    async def _artifact(self, kind: str, project: Project) -> Any:
        prompt = PROMPTS[kind].format(context=project_context(project))
        return await self._generate_json(prompt, unwrap=LIST_WRAPPERS.get(kind))

    async def _text(self, kind: str, project: Project) -> str:
        prompt = PROMPTS[kind].format(context=project_context(project))
        return await self._generate(prompt, json_mode=False)

    async def generate_brainstorming(self, project: Project) -> Any:
        return await self._artifact("brainstorming", project)

    async def generate_research(self, project: Project) -> Any:
        return await self._artifact("research", project)

    async def generate_architecture(self, project: Project) -> Any:
        return await self._artifact("architecture", project)

    async def generate_cost_estimation(self, project: Project) -> Any:
        return await self._artifact("cost_estimation", project)

    async def generate_schema(self, project: Project) -> Any:
        return await self._artifact("schema", project)

    async def generate_file_structure(self, project: Project) -> Any:
        return await self._artifact("file_structure", project)

    async def generate_design_system(self, project: Project) -> Any:
        return await self._artifact("design_system", project)

    async def generate_api_spec(self, project: Project) -> Any:
        return await self._artifact("api_spec", project)

    async def generate_security_context(self, project: Project) -> Any:
        return await self._artifact("security_context", project)

    async def generate_agent_rules(self, project: Project) -> str:
        return await self._text("agent_rules", project)

    async def generate_action_plan(self, project: Project) -> Any:
        return await self._artifact("action_plan", project)

    async def generate_kickoff_assets(self, project: Project) -> str:
        return await self._text("kickoff_assets", project)

    async def refine_section(self, section: str, current: Any, feedback: str) -> Any:
        """Ask for a revised version of one section.

        Text sections are refined as text; everything else round-trips as
        JSON with the same shape as ``current``.
        """
        current_json = json.dumps(to_jsonable_python(current, by_alias=True), indent=2)
        if isinstance(current, str):
            prompt = (
                f"Revise the following {section} document according to the "
                f"feedback. Return the full revised text.\n\nFeedback: {feedback}"
                f"\n\n{current}"
            )
            return await self._generate(prompt, json_mode=False)
        wrapped = isinstance(current, list)
        prompt = (
            f"Revise the following {section} JSON according to the feedback. "
            "Keep the same structure"
            + (' and return it as {"items": [...]}' if wrapped else "")
            + f".\n\nFeedback: {feedback}\n\n{current_json}"
        )
        return await self._generate_json(prompt, unwrap="items" if wrapped else None)

    async def refine_research(self, report: ResearchReport, feedback: str) -> Any:
        prompt = (
            "Investigate the question below in the context of this research "
            "summary. Return JSON with keys summary (the full updated summary) "
            "and newSources (list of {uri, title}).\n\n"
            f"Question: {feedback}\n\nSummary:\n{report.summary}"
        )
        return await self._generate_json(prompt)

    async def generate_implementation_guide(self, task: Task, project: Project) -> str:
        prompt = (
            "Write a step-by-step markdown implementation guide for this task.\n"
            f"Task: {task.description}\nRole: {task.role}\n{project_context(project)}"
        )
        return await self._generate(prompt, json_mode=False)

    async def generate_checklist(self, task: Task, project: Project) -> list[str]:
        prompt = (
            'Return JSON {"items": [...]} with short QA checklist items (strings) '
            f"for this task.\nTask: {task.description}\n{project_context(project)}"
        )
        items = await self._generate_json(prompt, unwrap="items")
        if not isinstance(items, list):
            raise MalformedArtifactError("Checklist items must be a list")
        return [str(item) for item in items]

    async def generate_task_code(self, task: Task, project: Project) -> Any:
        prompt = (
            "Write starter code for this task. Return JSON with keys language, "
            f"code, filename and description.\nTask: {task.description}\n"
            f"{project_context(project)}"
        )
        return await self._generate_json(prompt)


def project_context(project: Project) -> str:
    """Summarize the project as JSON for prompts.

    Only the idea and the artifacts produced so far are included; snapshots
    and chat history are left out.
    """
    data = project.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        exclude={"id", "last_updated", "snapshots", "chat_history", "tasks"},
    )
    return "Project:\n" + json.dumps(data, indent=2)
