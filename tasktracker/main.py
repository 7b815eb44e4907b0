import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from tasktracker.config import settings
from tasktracker.database import create_tables, engine
from tasktracker.exceptions import ConflictError, NotFoundError, ValidationError
from tasktracker.logging_setup import setup_logging
from tasktracker.routers.reports import router as reports_router
from tasktracker.routers.tags import router as tags_router
from tasktracker.routers.tasks import router as tasks_router
from tasktracker.routers.users import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_file)
    if settings.create_tables:
        await create_tables()
        logger.info("Database tables ready")

    yield

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    lifespan=lifespan,
    title="Task Tracker API",
    description="Task tracking with tags, status lifecycle, filtering and reports",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex="https?://.*",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "errors": exc.reasons},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


app.include_router(tasks_router)
app.include_router(users_router)
app.include_router(tags_router)
app.include_router(reports_router)


@app.get("/")
def root():
    return {"message": "Task Tracker API running"}
