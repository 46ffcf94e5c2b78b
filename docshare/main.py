from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from docshare.api.admin import router as admin_router
from docshare.api.documents import router as documents_router
from docshare.api.notifications import router as notifications_router
from docshare.api.subjects import router as subjects_router
from docshare.config import settings
from docshare.errors import register_error_handlers
from docshare.logging import configure_logging

configure_logging()

app = FastAPI(title=f"{settings.brand_name} API")
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(documents_router)
_include_api_router(subjects_router)
_include_api_router(notifications_router)
_include_api_router(admin_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
