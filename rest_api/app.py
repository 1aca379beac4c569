# rest_api/app.py
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from rest_api.authority import AuthorityReply, AuthoritySettings, WorkflowAuthority

# ---------- Request models ----------
# Only taskId is typed. Everything else reaches the authority untouched so it
# records history and answers with its own 400 messages.
class TaskEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    taskId: str = Field(..., min_length=1, description="Opaque task identifier")
    sentAt: Optional[str] = None


class PreviewRequest(TaskEnvelope):
    step: Any = None
    action: Any = None
    screenshot: Any = None
    executionPhase: Any = None


class CheckRequest(TaskEnvelope):
    step: Any = None
    action: Any = None
    screenshot: Any = None


class NextRequest(TaskEnvelope):
    step: Any = None
    action: Any = None
    checkResponse: Any = None
    screenshot: Any = None


class DoneRequest(TaskEnvelope):
    finalStep: Any = None
    action: Any = None
    checkResponse: Any = None
    history: Any = None


def _reply(reply: AuthorityReply) -> JSONResponse:
    return JSONResponse(status_code=reply.status_code, content=reply.body)


def create_app(
    authority: Optional[WorkflowAuthority] = None,
    settings: Optional[AuthoritySettings] = None,
) -> FastAPI:
    """Build the FastAPI app around one :class:`WorkflowAuthority` instance."""
    authority = authority or WorkflowAuthority(settings or AuthoritySettings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        authority.log.info(
            "Workflow authority ready (denylist=%s, strict_next=%s, history_limit=%s)",
            ", ".join(authority.settings.denylist) or "-",
            authority.settings.strict_next,
            authority.settings.history_limit,
        )
        try:
            yield
        finally:
            authority.log.info("Workflow authority stopped with %s task(s)", authority.task_count())

    app = FastAPI(title="Task Workflow Authority", version="0.1.0", lifespan=lifespan)
    app.state.authority = authority

    # ---------- Health / state ----------
    @app.get("/health")
    def health():
        return {"ok": True, "tasks": authority.task_count()}

    @app.get("/task/{task_id}")
    def task_state(task_id: str):
        snapshot = authority.snapshot(task_id)
        if snapshot is None:
            raise HTTPException(404, "Unknown task id")
        return snapshot

    # ---------- Task calls ----------
    @app.post("/task/action-preview")
    def action_preview(req: PreviewRequest):
        return _reply(authority.handle_preview(req.model_dump(exclude_unset=True)))

    @app.post("/task/check")
    def check(req: CheckRequest):
        return _reply(authority.handle_check(req.model_dump(exclude_unset=True)))

    @app.post("/task/next")
    def next_step(req: NextRequest):
        return _reply(authority.handle_next(req.model_dump(exclude_unset=True)))

    @app.post("/task/done")
    def done(req: DoneRequest):
        return _reply(authority.handle_done(req.model_dump(exclude_unset=True)))

    return app


app = create_app()
