"""Generation and refinement lifecycle.

The controller runs one external generation call per user action and
reconciles its outcome with the store:

    busy on -> await generator -> validate -> merge (+ phase change) -> busy off

Failures of any kind (transport errors, malformed values, unknown sections)
stop at this boundary and become one user-facing error message naming the
phase, section or task that failed. The project is never partially updated.

Each call is tracked as a GenerationRequest carrying a CancellationToken.
Cancelling is recorded but does not interrupt the call; a cancelled request
that succeeds still merges its result.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

import structlog
from pydantic import ValidationError

from catalyst.generation.base import (
    ArtifactGenerator,
    GenerationError,
    MalformedArtifactError,
)
from catalyst.logging import request_context
from catalyst.models.artifacts import ResearchRefinement, ResearchReport
from catalyst.models.base import generate_id
from catalyst.models.plan import TaskCodeSnippet
from catalyst.models.project import ArtifactKey, Phase
from catalyst.workflow.board import checklist_from_texts
from catalyst.workflow.store import (
    BusyConcern,
    SetBusy,
    SetError,
    Store,
    UpdateProject,
    UpdateTask,
)

logger = structlog.get_logger(__name__)

# Refinable sections by display name
SECTION_ARTIFACTS: dict[str, ArtifactKey] = {
    "Brainstorming": ArtifactKey.BRAINSTORMING,
    "Research": ArtifactKey.RESEARCH,
    "Architecture": ArtifactKey.ARCHITECTURE,
    "Data Model": ArtifactKey.SCHEMA,
    "Files": ArtifactKey.FILE_STRUCTURE,
    "UI/UX": ArtifactKey.DESIGN_SYSTEM,
    "API": ArtifactKey.API_SPEC,
    "Security": ArtifactKey.SECURITY,
    "Agent Rules": ArtifactKey.AGENT_RULES,
    "Plan": ArtifactKey.ACTION_PLAN,
    "Kickoff": ArtifactKey.KICKOFF,
}

AssistKind = Literal["guide", "checklist", "code"]

ASSIST_LABELS: dict[str, str] = {
    "guide": "implementation guide",
    "checklist": "checklist",
    "code": "code",
}

REQUEST_HISTORY_SIZE = 100


class UnknownSectionError(GenerationError):
    """Raised when a section name does not map to an artifact."""

    def __init__(self, section: str):
        self.section = section
        super().__init__(f"Unknown section: {section}")


class RequestStatus(str, Enum):
    """Lifecycle of one generation request.

    State transitions:
        RUNNING -> SUCCEEDED | FAILED
        REJECTED (read-only role, never started)
    """

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REJECTED = "rejected"


class CancellationToken:
    """Records a cancellation request.

    The core has no way to interrupt an in-flight call; the flag is only
    recorded so that callers can observe it.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass
class GenerationRequest:
    """One generation, refinement or task assistance call.

    Attributes:
        concern: Busy flag the request holds while running
        label: Phase, section or task the request works on (used in errors)
        id: Request identifier, also bound to log lines as request_id
        status: Current request status
        error: User-facing error message when failed
        token: Cancellation token
        started_at: Start time (monotonic seconds)
        finished_at: End time (monotonic seconds)
    """

    concern: BusyConcern
    label: str
    id: str = field(default_factory=generate_id)
    status: RequestStatus = RequestStatus.RUNNING
    error: str | None = None
    token: CancellationToken = field(default_factory=CancellationToken)
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is RequestStatus.SUCCEEDED

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at


@dataclass
class ArtifactBundle:
    """A generated artifact plus side artifacts merged in the same update.

    Side artifacts are merged before the main value.
    """

    value: Any
    side: dict[ArtifactKey, Any] = field(default_factory=dict)


def resolve_section(section: str) -> ArtifactKey | None:
    """Map a section display name to its artifact key.

    Falls back to the lower-cased name when it is itself an artifact key.
    """
    key = SECTION_ARTIFACTS.get(section)
    if key is not None:
        return key
    try:
        return ArtifactKey(section.strip().lower())
    except ValueError:
        return None


def merge_research(report: ResearchReport, refinement: ResearchRefinement) -> ResearchReport:
    """Replace the summary and append new sources, skipping known URIs."""
    known = {source.uri for source in report.sources}
    sources = list(report.sources)
    for source in refinement.new_sources:
        if source.uri not in known:
            known.add(source.uri)
            sources.append(source)
    return report.model_copy(update={"summary": refinement.summary, "sources": sources})


def describe_failure(exc: BaseException) -> str:
    """Short cause text for a failed call."""
    if isinstance(exc, ValidationError):
        return f"malformed artifact ({exc.error_count()} validation errors)"
    return str(exc) or type(exc).__name__


class LifecycleController:
    """Runs generation calls against a store.

    Attributes:
        store: Store receiving every state change
        generator: Artifact generator used for all calls
        requests: Most recent requests, oldest first
    """

    def __init__(self, store: Store, generator: ArtifactGenerator) -> None:
        self.store = store
        self.generator = generator
        self.requests: deque[GenerationRequest] = deque(maxlen=REQUEST_HISTORY_SIZE)

    def _begin(self, concern: BusyConcern, label: str) -> GenerationRequest:
        request = GenerationRequest(concern=concern, label=label)
        self.requests.append(request)
        if self.store.state.read_only:
            request.status = RequestStatus.REJECTED
            request.finished_at = time.monotonic()
            logger.debug("generation_rejected_read_only", concern=concern, label=label)
        return request

    def _start(self, request: GenerationRequest) -> None:
        self.store.dispatch(SetBusy(concern=request.concern, value=True))
        self.store.dispatch(SetError(message=None))
        logger.info("generation_started", concern=request.concern, label=request.label)

    def _fail(self, request: GenerationRequest, message: str, exc: BaseException) -> None:
        request.status = RequestStatus.FAILED
        request.error = message
        self.store.dispatch(SetError(message=message))
        logger.warning(
            "generation_failed",
            concern=request.concern,
            label=request.label,
            error=describe_failure(exc),
            error_type=type(exc).__name__,
        )

    def _succeed(self, request: GenerationRequest) -> None:
        request.status = RequestStatus.SUCCEEDED
        logger.info(
            "generation_succeeded",
            concern=request.concern,
            label=request.label,
            cancelled=request.token.cancelled,
        )

    def _end(self, request: GenerationRequest) -> None:
        request.finished_at = time.monotonic()
        self.store.dispatch(SetBusy(concern=request.concern, value=False))

    def cancel(self, request_id: str) -> bool:
        """Record cancellation of a request. Returns False if it is unknown."""
        for request in self.requests:
            if request.id == request_id:
                request.token.cancel()
                logger.info("generation_cancel_recorded", label=request.label)
                return True
        return False

    async def run_phase_generator(
        self,
        target_phase: Phase,
        produce: Callable[[], Awaitable[Any]],
        artifact_key: ArtifactKey,
        label: str | None = None,
    ) -> GenerationRequest:
        """Produce one artifact, merge it and move to ``target_phase``.

        Args:
            target_phase: Phase to switch to on success.
            produce: Zero-argument coroutine function returning the artifact
                value or an ArtifactBundle.
            artifact_key: Slot receiving the produced value.
            label: Name used in the error message (defaults to the target phase).

        Returns:
            The finished request. On failure the store's error holds
            ``"Failed to generate <label>: <cause>"`` and neither the project
            nor the current phase changed.
        """
        label = label or target_phase.value
        request = self._begin("generating", label)
        if request.status is RequestStatus.REJECTED:
            return request
        with request_context(request.id):
            self._start(request)
            try:
                result = await produce()
                if result is None:
                    raise MalformedArtifactError("generator returned no value")
                if isinstance(result, ArtifactBundle):
                    updates = {**result.side, artifact_key: result.value}
                else:
                    updates = {artifact_key: result}
                command = UpdateProject(artifacts=updates, phase=target_phase)
            except Exception as e:
                self._fail(request, f"Failed to generate {label}: {describe_failure(e)}", e)
            else:
                self.store.dispatch(command)
                self._succeed(request)
            finally:
                self._end(request)
        return request

    async def refine(self, section: str, feedback: str) -> GenerationRequest:
        """Revise one section's artifact according to user feedback.

        Research is special: the summary is replaced and newly found sources
        are appended to the existing list.
        """
        request = self._begin("refining", section)
        if request.status is RequestStatus.REJECTED:
            return request
        with request_context(request.id):
            self._start(request)
            try:
                key = resolve_section(section)
                if key is None:
                    raise UnknownSectionError(section)
                current = self.store.state.project.artifact(key)
                if key is ArtifactKey.RESEARCH:
                    if current is None:
                        raise GenerationError("no research report to refine")
                    raw = await self.generator.refine_research(current, feedback)
                    refinement = ResearchRefinement.model_validate(raw)
                    value = merge_research(current, refinement)
                else:
                    value = await self.generator.refine_section(section, current, feedback)
                    if value is None:
                        raise MalformedArtifactError("generator returned no value")
                command = UpdateProject(artifacts={key: value})
            except Exception as e:
                self._fail(request, f"Refining {section} failed.", e)
            else:
                self.store.dispatch(command)
                self._succeed(request)
            finally:
                self._end(request)
        return request

    async def assist_task(self, task_id: str, kind: AssistKind) -> GenerationRequest:
        """Generate an implementation guide, checklist or code for one task."""
        what = ASSIST_LABELS[kind]
        request = self._begin("assisting", task_id)
        if request.status is RequestStatus.REJECTED:
            return request
        with request_context(request.id):
            self._start(request)
            try:
                project = self.store.state.project
                task = next((t for t in project.tasks or [] if t.id == task_id), None)
                if task is None:
                    raise GenerationError("task not found")
                if kind == "guide":
                    guide = await self.generator.generate_implementation_guide(task, project)
                    changes: dict[str, Any] = {"implementation_guide": str(guide)}
                elif kind == "checklist":
                    items = await self.generator.generate_checklist(task, project)
                    changes = {"checklist": checklist_from_texts(items)}
                else:
                    snippet = await self.generator.generate_task_code(task, project)
                    changes = {"code_snippet": TaskCodeSnippet.model_validate(snippet)}
                command = UpdateTask(task_id=task_id, changes=changes)
            except Exception as e:
                self._fail(
                    request,
                    f"Failed to generate {what} for task {task_id}: {describe_failure(e)}",
                    e,
                )
            else:
                self.store.dispatch(command)
                self._succeed(request)
            finally:
                self._end(request)
        return request
