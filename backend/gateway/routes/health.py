"""
Board Gateway — Health Check & Root Routes
===========================================

What:  GET /health (liveness) and GET / (plain-text banner).
Why:   Load balancers and container runtimes probe /health every few
       seconds. It reports the runtime mode and nothing else: no database
       query, no session (SessionMiddleware skips the path), no collaborator.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from gateway.schemas.envelope import HealthResponse

router = APIRouter(tags=["Health"])

ROOT_BANNER = "Backend is running. See /docs for Swagger UI."


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Always 200 while the process is serving. Does not touch the session store.",
)
async def health_check(request: Request) -> HealthResponse:
    return HealthResponse(ok=True, env=request.app.state.settings.node_env)


@router.get("/", response_class=PlainTextResponse, summary="Service banner")
async def root() -> PlainTextResponse:
    return PlainTextResponse(ROOT_BANNER, status_code=200)
