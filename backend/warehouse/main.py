# backend/warehouse/main.py
import logging
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from warehouse.core.config import settings
from warehouse.api import auth, contacts, dashboard, materials, orders, products, users
from warehouse.core.cache import LookupCache
from warehouse.core.exceptions import WarehouseError
from warehouse.core.init_db import init_db
from warehouse.services.photo_storage import PhotoStorage
import warehouse.models  # Implicitly registers models

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Warehouse Management API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Created at import so the static mount below has a directory to serve
upload_dir = Path(settings.UPLOAD_DIR)
upload_dir.mkdir(parents=True, exist_ok=True)
app.state.cache = LookupCache(settings.CACHE_TTL_SECONDS)
app.state.photo_storage = PhotoStorage(settings.UPLOAD_DIR, settings.MAX_UPLOAD_SIZE_MB)


@app.on_event("startup")
async def startup():
    await init_db()
    logger.info(f"Warehouse API started (cache TTL {settings.CACHE_TTL_SECONDS}s, uploads in {upload_dir})")


@app.on_event("shutdown")
async def shutdown():
    app.state.cache.clear()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(WarehouseError)
async def warehouse_error_handler(request: Request, exc: WarehouseError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _error(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(500, "Internal server error")


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(materials.router)
app.include_router(products.router)
app.include_router(contacts.router)
app.include_router(orders.router)
app.include_router(dashboard.router)

app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
