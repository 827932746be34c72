"""Verification run orchestration.

Walks the state machine Unauthenticated -> Authenticated -> Verified ->
[GuestAuthorized] -> Done. Each transition needs the previous step to
succeed; the first `ControllerTestError` halts the run and is recorded with
the stage that raised it. Printing stays in the CLI via `PipelineHooks`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from core.domain.errors import ControllerTestError
from core.domain.models import (
    Credentials,
    DiagnosticReport,
    Endpoint,
    SessionState,
    Site,
    Stage,
    StageResult,
)
from core.interfaces.transport import TransportResponse
from core.services.session_protocol import SessionProtocolEngine


@dataclass
class DiagnosticRequest:
    """Parameters of a single verification run."""

    endpoint: Endpoint
    credentials: Credentials
    site: str = "default"
    guest_mac: str | None = None


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress, results)."""

    stage_started: Callable[[Stage], None] | None = None
    stage_finished: Callable[[StageResult], None] | None = None
    sites_listed: Callable[[list[Site]], None] | None = None
    guest_skipped: Callable[[], None] | None = None


@dataclass
class DiagnosticResult:
    """Output of a run."""

    state: SessionState = SessionState.UNAUTHENTICATED
    stages: list[StageResult] = field(default_factory=list)
    sites: list[Site] = field(default_factory=list)
    error: ControllerTestError | None = None
    failed_stage: Stage | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.state is SessionState.DONE

    def to_report(self, request: DiagnosticRequest) -> DiagnosticReport:
        return DiagnosticReport(
            controller=request.endpoint.host,
            port=request.endpoint.port,
            username=request.credentials.username,
            site=request.site,
            succeeded=self.succeeded,
            final_state=self.state,
            failed_stage=self.failed_stage,
            stages=list(self.stages),
            sites=list(self.sites),
            guest_mac=request.guest_mac,
        )


class _StageRecorder:
    def __init__(self, result: DiagnosticResult, hooks: PipelineHooks) -> None:
        self._result = result
        self._hooks = hooks
        self.last_status: int | None = None

    def on_response(self, _stage: Stage, response: TransportResponse) -> None:
        self.last_status = response.status_code

    def start(self, stage: Stage) -> None:
        self.last_status = None
        if self._hooks.stage_started:
            self._hooks.stage_started(stage)

    def succeed(self, stage: Stage) -> None:
        self._finish(StageResult(stage=stage, ok=True, http_status=self.last_status))

    def fail(self, stage: Stage, exc: ControllerTestError) -> None:
        self._result.error = exc
        self._result.failed_stage = stage
        details = exc.to_dict()
        self._finish(
            StageResult(
                stage=stage,
                ok=False,
                http_status=self.last_status,
                error_type=details["error_type"],
                message=details["error"],
                suggestion=details["suggestion"] or None,
            )
        )

    def _finish(self, stage_result: StageResult) -> None:
        self._result.stages.append(stage_result)
        if self._hooks.stage_finished:
            self._hooks.stage_finished(stage_result)


async def run_diagnostic(
    engine: SessionProtocolEngine,
    request: DiagnosticRequest,
    *,
    hooks: PipelineHooks | None = None,
) -> DiagnosticResult:
    """Run login, sites verification and the optional guest authorization."""

    hooks = hooks or PipelineHooks()
    result = DiagnosticResult()
    recorder = _StageRecorder(result, hooks)
    engine.add_response_listener(recorder.on_response)
    try:
        await _run_stages(engine, request, hooks, result, recorder)
    finally:
        engine.remove_response_listener(recorder.on_response)
    return result


async def _run_stages(
    engine: SessionProtocolEngine,
    request: DiagnosticRequest,
    hooks: PipelineHooks,
    result: DiagnosticResult,
    recorder: _StageRecorder,
) -> None:
    recorder.start(Stage.LOGIN)
    try:
        session = await engine.authenticate(request.endpoint, request.credentials)
    except ControllerTestError as exc:
        recorder.fail(Stage.LOGIN, exc)
        return
    result.state = SessionState.AUTHENTICATED
    recorder.succeed(Stage.LOGIN)

    recorder.start(Stage.SITES)
    try:
        sites = await engine.verify_session(request.endpoint, session)
    except ControllerTestError as exc:
        recorder.fail(Stage.SITES, exc)
        return
    result.state = SessionState.VERIFIED
    result.sites = sites
    recorder.succeed(Stage.SITES)
    if hooks.sites_listed:
        hooks.sites_listed(sites)

    if request.guest_mac:
        recorder.start(Stage.GUEST)
        try:
            await engine.authorize_guest(request.endpoint, session, request.site, request.guest_mac)
        except ControllerTestError as exc:
            recorder.fail(Stage.GUEST, exc)
            return
        result.state = SessionState.GUEST_AUTHORIZED
        recorder.succeed(Stage.GUEST)
    elif hooks.guest_skipped:
        hooks.guest_skipped()

    result.state = SessionState.DONE
