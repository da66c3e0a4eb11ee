import asyncio
import logging
import os
import signal
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database

from config import Settings
from database import connect_db, ensure_indexes
from errors import install_error_handlers
from routes import client_config, orders, products, upload, users

logger = logging.getLogger(__name__)


# --------------------- Process-level crash handling ---------------------

def install_crash_handlers() -> None:
    def on_uncaught(exc_type, exc, tb):
        logger.critical("Uncaught Exception: %s", exc, exc_info=(exc_type, exc, tb))

    sys.excepthook = on_uncaught


def _on_unhandled_rejection(app: FastAPI, loop, context) -> None:
    logger.critical("Unhandled Rejection: %s", context.get("exception") or context.get("message"))
    # Let uvicorn close the server, run() exits with status 1 afterwards
    app.state.crashed = True
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(lambda lp, ctx: _on_unhandled_rejection(app, lp, ctx))
    yield


# --------------------- App factory ---------------------

def mount_frontend(app: FastAPI, settings: Settings) -> None:
    build_dir = settings.frontend_build_dir.resolve()

    @app.get("/{full_path:path}", include_in_schema=False)
    def serve_frontend(full_path: str):
        if full_path == "api" or full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")
        candidate = (build_dir / full_path).resolve()
        if full_path and candidate.is_file() and build_dir in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(build_dir / "index.html")

    # Any other method on a path no route handles is a plain 404
    @app.api_route(
        "/{full_path:path}",
        methods=["POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    def not_found(full_path: str):
        raise HTTPException(status_code=404, detail="Not Found")


def create_app(settings: Settings, db: Database) -> FastAPI:
    app = FastAPI(title="E-commerce API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.crashed = False
    ensure_indexes(db)

    if settings.is_development:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.perf_counter()
            response = await call_next(request)
            elapsed = (time.perf_counter() - start) * 1000
            logger.info("%s %s %s %.3f ms", request.method, request.url.path, response.status_code, elapsed)
            return response

    # Outermost middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api")
    def health():
        return {"message": "E-Commerce API is running successfully."}

    app.include_router(products.router, prefix="/api/products", tags=["products"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
    app.include_router(upload.router, prefix="/api/upload", tags=["upload"])
    app.include_router(client_config.router, prefix="/api/config", tags=["config"])

    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")

    if settings.is_production:
        mount_frontend(app, settings)
    else:
        @app.get("/", response_class=PlainTextResponse)
        def root():
            return "API is running on development server..."

    # 404 and generic handlers
    install_error_handlers(app)
    return app


def run() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    install_crash_handlers()
    db = connect_db(settings)
    app = create_app(settings, db)
    logger.info("Server is running in %s mode on port %s", settings.environment, settings.port)
    try:
        import uvicorn
        uvicorn.run(app, host="0.0.0.0", port=settings.port)
    finally:
        db.client.close()
    if app.state.crashed:
        sys.exit(1)


if __name__ == "__main__":
    run()
