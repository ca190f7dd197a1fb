"""
FastAPI application for the video tutor gateway.
"""

import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from vidtutor.config import config
from vidtutor.api.routes import router
from vidtutor.utils.error_handling import register_exception_handlers
from vidtutor.utils.logger import logging

# FastAPI application
app = FastAPI(
    title=config.APP_NAME,
    version=config.APP_VERSION,
    description="Video metadata, downloads and AI beginner tutorials for Bilibili and YouTube links",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Log which engines are available."""
    settings = config.get_engine_settings()
    logging.info(f"Starting {config.APP_NAME} v{config.APP_VERSION}")
    logging.info(f"Chat model: {settings['siliconflow_model']} at {settings['siliconflow_base']}")


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Middleware to add processing time header to responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


register_exception_handlers(app)

# Include API router
app.include_router(router)


# Root
@app.get("/")
async def root():
    """Root endpoint returning basic API information."""
    return {
        "name": config.APP_NAME,
        "version": config.APP_VERSION,
        "description": "Video Tutor Gateway API",
    }


@app.get("/health")
async def health():
    return {"status": "ok"}
