import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from hackhub.db import engine
from hackhub.errors import AppError
from hackhub.init_db import init_models
from hackhub.routers import (
    auth_router,
    events_router,
    teams_router,
    submissions_router,
    evaluations_router,
    notifications_router,
    announcements_router
)
from hackhub.settings import settings
from hackhub.utils.background_tasks import start_scheduler, shutdown_scheduler

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="HackHub API",
    description="Hackathon events, teams, submissions, judging and leaderboards",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(events_router)
app.include_router(teams_router)
app.include_router(submissions_router)
app.include_router(evaluations_router)
app.include_router(notifications_router)
app.include_router(announcements_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {
        "success": False,
        "error": "internal_error",
        "message": "Internal server error",
    }
    if settings.debug:
        content["details"] = {
            "exception": repr(exc),
            "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
        }
    return JSONResponse(status_code=500, content=content)


@app.on_event("startup")
async def startup_event():
    """Runs when the application starts"""
    await init_models(engine)
    if settings.scheduler_enabled:
        start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    shutdown_scheduler()


@app.get("/healthz", tags=["health"])
async def healthz():
    return {"status": "ok"}


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title="HackHub API",
        version="1.0.0",
        description="API with JWT authentication",
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "Bearer": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Enter your bearer token in the format **Bearer &lt;token&gt;**"
        }
    }

    openapi_schema["security"] = [{"Bearer": []}]

    public_paths = ["/auth/login", "/auth/register", "/healthz", "/docs", "/openapi.json"]

    for path in openapi_schema["paths"]:
        if any(path.endswith(public_path) for public_path in public_paths):
            for method in openapi_schema["paths"][path]:
                if method.lower() in ["get", "post", "put", "delete", "patch"]:
                    openapi_schema["paths"][path][method]["security"] = []

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi
