import asyncio
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.core.clock import utcnow
from app.core.config import settings
from app.database.connection import init_db
from app.middleware.metrics import MetricsMiddleware, new_metrics
from app.routes import system
from app.routes.shopping_list import router as shopping_list_router
from app.routes.trips import router as trips_router
from app.routes.prices import router as prices_router
from app.routes.receipts import router as receipts_router
from app.routes.admin import router as admin_router
from app.services.scheduler_service import cleanup_scheduler_loop

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Household Grocery Trips & Prices")

app.add_middleware(MetricsMiddleware)


app.include_router(shopping_list_router)
app.include_router(trips_router)
app.include_router(prices_router)
app.include_router(receipts_router)
app.include_router(admin_router)
app.include_router(system.router)


# ---------- ERROR ENVELOPE: {"error": "..."} ----------

def _validation_message(exc: RequestValidationError) -> str:
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        if err.get("type") == "missing" and loc:
            return f"{loc[-1]} is required"
        if loc:
            return f"Invalid value for {loc[-1]}: {err.get('msg')}"
    return "Missing required fields"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _validation_message(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@app.on_event("startup")
async def startup_event():
    init_db()
    if settings.CLEANUP_SCHEDULER_ENABLED:
        asyncio.create_task(cleanup_scheduler_loop())
    app.state.start_time = utcnow()
    app.state.metrics = new_metrics()
