import datetime
import traceback

from fastapi import FastAPI, Request

from collector import __version__
from collector.core.config import SHOW_ERROR_DETAILS
from collector.database.errors import ValidationError, StorageError
from collector.responses import PrettyJSONResponse
from collector.routers import readings

async def validation_exception_handler(request: Request, exc: ValidationError):
    content = {"success": False, "error": exc.message}
    if exc.field:
        content["field"] = exc.field
    return PrettyJSONResponse(status_code=400, content=content)

async def storage_exception_handler(request: Request, exc: StorageError):
    print(f"[{datetime.datetime.now(datetime.timezone.utc)}] Storage error for {request.method} {request.url.path}: {exc}")
    return PrettyJSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "message": exc.message if SHOW_ERROR_DETAILS else "Database operation failed",
            "data": []
        },
    )

async def generic_exception_handler(request: Request, exc: Exception):
    print("="*80)
    print(f"Unhandled exception for request: {request.method} {request.url}")
    traceback.print_exc()
    print("="*80)

    return PrettyJSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "message": str(exc) if SHOW_ERROR_DETAILS else "Something went wrong!"
        },
    )

def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        default_response_class=PrettyJSONResponse,
        debug=False,
        title="IoT Data Collector",
        version=__version__,
        description="Device reading ingestion, history and retention",
        lifespan=lifespan
    )

    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(StorageError, storage_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    _setup_routers(app)

    return app

def _setup_routers(app: FastAPI):
    app.include_router(readings.router)
