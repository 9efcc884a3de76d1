# task_manager/app/main.py
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.audit_client import AuditClient

from .api import router as tasks_router
from .bootstrap import initialize
from .config import settings
from .persistence import SnapshotFile, TaskService
from .storage import TaskStore


# --- базовый логгер (stdout контейнера) ---

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("task_manager")


def create_app(
    tasks_file: Optional[Union[str, Path]] = None,
    seed_defaults: Optional[bool] = None,
    audit_url: Optional[str] = None,
) -> FastAPI:
    snapshot_path = Path(tasks_file or settings.TASKS_FILE)
    if seed_defaults is None:
        seed_defaults = settings.SEED_DEFAULTS

    service = TaskService(TaskStore(), SnapshotFile(snapshot_path))
    audit = AuditClient(
        service_name=settings.PROJECT_NAME,
        base_url=audit_url or settings.AUDIT_URL,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # стор заполняется до первого запроса
        total = initialize(service, seed_defaults=seed_defaults)
        logger.info("Task store ready file=%s total=%d", snapshot_path, total)
        yield
        await audit.aclose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.task_service = service
    app.state.audit = audit

    # --- middleware: trace_id + audit http-запросов ---
    @app.middleware("http")
    async def trace_and_audit_middleware(request: Request, call_next):
        incoming_trace_id = request.headers.get("X-Trace-Id")
        trace_id = incoming_trace_id or str(uuid.uuid4())

        request.state.trace_id = trace_id

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000.0

        response.headers["X-Trace-Id"] = trace_id

        task_id: Optional[int] = None
        raw_task_id = request.path_params.get("task_id")
        if raw_task_id is not None and str(raw_task_id).isdigit():
            task_id = int(raw_task_id)

        await audit.log(
            level="INFO",
            message="HTTP request handled by task_manager",
            trace_id=trace_id,
            task_id=task_id,
            context={
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query),
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        return response

    # невалидное тело/параметры -> 400, а не 422
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected request %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "service": settings.PROJECT_NAME,
            "tasks": len(service.store),
        }

    app.include_router(tasks_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
