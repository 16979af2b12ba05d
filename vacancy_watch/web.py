"""FastAPI trigger surface: ``/new``, ``/all``, ``/checkpoint`` and ``/health``."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from .orchestrator import CycleResult, Orchestrator, Outcome

TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"
NOTHING_NEW_MESSAGE = "No new vacancies found."
NOTHING_FOUND_MESSAGE = "No vacancies found."
FAILURE_MESSAGE = "Internal pipeline error."

router = APIRouter()
logger = structlog.get_logger("vacancy_watch.web")


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def _respond(result: CycleResult, empty_message: str) -> PlainTextResponse:
    if result.outcome is Outcome.DELIVERED:
        return PlainTextResponse(result.digest, media_type=TEXT_MEDIA_TYPE)
    return PlainTextResponse(empty_message, status_code=404, media_type=TEXT_MEDIA_TYPE)


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/new", response_class=PlainTextResponse)
def new_vacancies(orchestrator: Orchestrator = Depends(get_orchestrator)) -> PlainTextResponse:
    try:
        result = orchestrator.run_new()
    except Exception:  # noqa: BLE001
        logger.exception("http_cycle_failed", route="/new")
        return PlainTextResponse(FAILURE_MESSAGE, status_code=500, media_type=TEXT_MEDIA_TYPE)
    return _respond(result, NOTHING_NEW_MESSAGE)


@router.get("/all", response_class=PlainTextResponse)
def all_vacancies(orchestrator: Orchestrator = Depends(get_orchestrator)) -> PlainTextResponse:
    try:
        result = orchestrator.run_all()
    except Exception:  # noqa: BLE001
        logger.exception("http_cycle_failed", route="/all")
        return PlainTextResponse(FAILURE_MESSAGE, status_code=500, media_type=TEXT_MEDIA_TYPE)
    return _respond(result, NOTHING_FOUND_MESSAGE)


@router.get("/checkpoint")
def checkpoint(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict:
    value = orchestrator.strategy.checkpoint
    return {
        "mode": orchestrator.strategy.mode.value,
        "checkpoint": value.isoformat() if value else None,
    }


def create_app(orchestrator: Orchestrator, close_on_shutdown: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        if close_on_shutdown:
            orchestrator.close()

    app = FastAPI(title="Vacancy Watch", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.include_router(router)
    return app


__all__ = ["create_app", "router"]
