from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from collectr_importer.api.v1 import router as v1_endpoint
from collectr_importer.api.v1.endpoint import get_importer_config
from collectr_importer.utils.playwright import ensure_playwright_browsers
from collectr_importer.utils.logger import api_logger, browser_logger
from collectr_importer.utils.logging_filter import HealthCheckFilter


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())
    config = get_importer_config()
    try:
        await ensure_playwright_browsers(config)
    except Exception as e:
        browser_logger.warning(f"Playwright browser install failed, browser strategy will fail: {e}")
    yield


app = FastAPI(
    title="API",
    description="Collectr showcase importer API",
    version="1.0.0",
    lifespan=lifespan,
)

origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # Allow origins in the list
    allow_credentials=True,  # Allow cookies (if needed)
    allow_methods=["*"],  # Allow all methods (GET, POST, etc.)
    allow_headers=["*"],  # Allow all headers
)


app.include_router(v1_endpoint, prefix="/api/v1", tags=["API Version 1"])


@app.get("/", tags=["Root"])
def read_root():
    return {"status": "ok", "message": "Welcome Collectr Importer API!"}


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy", "message": "Collectr Importer API is running", "version": "1.0.0"}


# debug purpose, swagger schema problems surface at import time
try:
    app.openapi()
    api_logger.info("OpenAPI schema generated successfully")
except Exception as e:
    api_logger.exception("Failed to generate OpenAPI schema: %s", e)

# To run this application for development:
# uvicorn main:app --reload
