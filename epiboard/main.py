# main.py
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from .api.router import router
from .config import settings
from .storage.cache import SnapshotCache
from .storage.paths import DataPaths

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Epidemiological Surveillance Board API starting up...")
    logger.info(f"API Version: {API_VERSION}")

    paths = DataPaths(upload_dir=settings.UPLOAD_DIR, data_dir=settings.DATA_DIR)
    logger.info(f"Uploads dir: {paths.upload_dir} | seed data dir: {paths.data_dir}")

    # Un único snapshot cache por proceso (compartido por todas las rutas)
    app.state.data_paths = paths
    app.state.snapshot_cache = SnapshotCache(directory=paths.resolve)

    try:
        yield
    finally:
        # Shutdown
        logger.info("Epidemiological Surveillance Board API shutting down...")

app = FastAPI(
    title="Epidemiological Surveillance Board API",
    description="Weekly IRA/EDA/febrile surveillance reconciled against the facility roster",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)

app.include_router(router=router)

# dashboard.html / index.html, si la carpeta existe
if settings.STATIC_DIR.is_dir():
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")


def run():
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
