"""FastAPI application exposing the Standup Pulse REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .db import Database
from .errors import (
    AlreadyStartedError,
    ConfigurationError,
    NotFoundError,
    StandupError,
    ValidationError,
)
from .service import StandupService
from .slack_client import SlackClient

ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: 422,
    ConfigurationError: status.HTTP_409_CONFLICT,
    AlreadyStartedError: status.HTTP_409_CONFLICT,
}


class TeamIn(BaseModel):
    name: str


class ConfigPatch(BaseModel):
    schedule_time: Optional[str] = None
    timezone: Optional[str] = None
    participants: Optional[List[str]] = None
    channel_id: Optional[str] = None
    response_timeout_minutes: Optional[int] = None


class AnswerIn(BaseModel):
    user_id: str
    question_index: int = Field(ge=1, le=3)
    text: str
    team_id: Optional[str] = None


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[StandupService] = None,
) -> FastAPI:
    settings = settings or load_settings()
    if service is None:
        slack_client = SlackClient(settings.slack_bot_token) if settings.slack_bot_token else None
        service = StandupService(settings, Database(settings.database_path), slack_client)

    async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> None:
        if x_api_key != settings.api_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid api key")

    def date_dependency(
        value: Optional[str] = Query(None, alias="date"),
    ) -> Optional[date]:
        if not value:
            return None
        try:
            return datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD") from exc

    app = FastAPI(title="Standup Pulse API", version="1.0.0")

    @app.exception_handler(StandupError)
    async def standup_error_handler(request: Request, exc: StandupError) -> JSONResponse:
        code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        return JSONResponse(status_code=code, content={"detail": exc.message, **_context(exc)})

    @app.on_event("startup")
    async def startup_event() -> None:  # pragma: no cover - io bound
        await service.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        await service.stop()
        if service.client is not None:
            await service.client.close()

    def get_service() -> StandupService:
        return service

    @app.get("/healthz")
    async def healthcheck(svc: StandupService = Depends(get_service)) -> dict[str, object]:
        return {"status": "ok", "scheduler": svc.engine.status()}

    @app.put("/api/teams/{team_id}", dependencies=[Depends(verify_api_key)])
    async def put_team(
        team_id: str, body: TeamIn, svc: StandupService = Depends(get_service)
    ) -> dict[str, object]:
        team = svc.create_team(team_id, body.name)
        return {"id": team.id, "name": team.name, "config": team.config.to_dict()}

    @app.get("/api/teams/{team_id}/config", dependencies=[Depends(verify_api_key)])
    async def get_config(
        team_id: str, svc: StandupService = Depends(get_service)
    ) -> dict[str, object]:
        return svc.get_config(team_id).to_dict()

    @app.patch("/api/teams/{team_id}/config", dependencies=[Depends(verify_api_key)])
    async def patch_config(
        team_id: str, body: ConfigPatch, svc: StandupService = Depends(get_service)
    ) -> dict[str, object]:
        changes = body.model_dump(exclude_unset=True)
        return svc.configure(team_id, **changes).to_dict()

    @app.post("/api/teams/{team_id}/enable", dependencies=[Depends(verify_api_key)])
    async def enable_team(
        team_id: str, svc: StandupService = Depends(get_service)
    ) -> dict[str, object]:
        return svc.enable(team_id).to_dict()

    @app.post("/api/teams/{team_id}/disable", dependencies=[Depends(verify_api_key)])
    async def disable_team(
        team_id: str, svc: StandupService = Depends(get_service)
    ) -> dict[str, object]:
        return svc.disable(team_id).to_dict()

    @app.post(
        "/api/teams/{team_id}/start",
        dependencies=[Depends(verify_api_key)],
        status_code=status.HTTP_201_CREATED,
    )
    async def start_now(
        team_id: str, svc: StandupService = Depends(get_service)
    ) -> dict[str, object]:
        return await svc.start_now(team_id)

    @app.get("/api/teams/{team_id}/status", dependencies=[Depends(verify_api_key)])
    async def get_status(
        team_id: str,
        d: Optional[date] = Depends(date_dependency),
        svc: StandupService = Depends(get_service),
    ) -> dict[str, object]:
        day = d or svc.clock.today()
        return {"date": day.isoformat(), **svc.get_status(team_id, day).to_dict()}

    @app.get("/api/teams/{team_id}/summary", dependencies=[Depends(verify_api_key)])
    async def get_summary(
        team_id: str,
        d: Optional[date] = Depends(date_dependency),
        svc: StandupService = Depends(get_service),
    ) -> dict[str, object]:
        return svc.get_summary(team_id, d).to_dict()

    @app.get("/api/teams/{team_id}/history", dependencies=[Depends(verify_api_key)])
    async def get_history(
        team_id: str,
        limit: int = 7,
        svc: StandupService = Depends(get_service),
    ) -> dict[str, object]:
        history = svc.get_history(team_id, limit)
        return {"team_id": team_id, "history": [entry.to_dict() for entry in history]}

    @app.post("/api/answers", dependencies=[Depends(verify_api_key)])
    async def post_answer(
        body: AnswerIn, svc: StandupService = Depends(get_service)
    ) -> dict[str, object]:
        record = svc.record_answer(body.user_id, body.question_index, body.text, body.team_id)
        return record.to_dict()

    return app


def _context(exc: StandupError) -> dict[str, object]:
    return {"context": {k: str(v) for k, v in exc.context.items()}} if exc.context else {}


app = create_app()


__all__ = ["app", "create_app"]
