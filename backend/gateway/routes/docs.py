"""
Board Gateway — API Documentation Routes
=========================================

What:  GET /docs (Swagger UI) and GET /openapi.json (generated document).
Why:   The document is generated per request so `host` and `schemes` match
       the address the caller actually used, including through a TLS
       terminating proxy (X-Forwarded-Proto).
How:   FastAPI's own generator over the application's routes. A generator
       failure raises and ends in the error terminal; an empty result
       renders as JSON null.
"""

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse, JSONResponse

router = APIRouter(tags=["Docs"])

DOC_TITLE = "Time Attack BBS"
DOC_DESCRIPTION = "Time Attack team bulletin board API."

# Swagger UI loads from jsDelivr and boots with an inline script.
DOCS_CONTENT_SECURITY_POLICY = "; ".join((
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
    "img-src 'self' data: https://fastapi.tiangolo.com",
    "frame-ancestors 'self'",
    "object-src 'none'",
))


def document_origin(request: Request) -> tuple:
    """(host, scheme) for the generated document."""
    settings = request.app.state.settings
    host = request.headers.get("host") or f"localhost:{settings.port}"
    forwarded = request.headers.get("x-forwarded-proto", "")
    scheme = forwarded.split(",")[0].strip() or request.url.scheme or "http"
    return host, scheme


def build_document(request: Request):
    app = request.app
    host, scheme = document_origin(request)
    document = get_openapi(
        title=DOC_TITLE,
        version=app.version,
        description=DOC_DESCRIPTION,
        routes=app.routes,
        servers=[{"url": f"{scheme}://{host}"}],
    )
    if not document:
        return None
    document["host"] = host
    document["schemes"] = [scheme]
    return document


@router.get("/openapi.json", include_in_schema=False)
async def openapi_document(request: Request) -> JSONResponse:
    return JSONResponse(jsonable_encoder(build_document(request)))


@router.get("/docs", include_in_schema=False)
async def swagger_ui() -> HTMLResponse:
    response = get_swagger_ui_html(openapi_url="/openapi.json", title=f"{DOC_TITLE} - Swagger UI")
    response.headers["Content-Security-Policy"] = DOCS_CONTENT_SECURITY_POLICY
    return response
