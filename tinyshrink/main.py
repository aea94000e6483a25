# main.py

"""
TinyShrink Compression API - Main Entry Point
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from tinyshrink.core.config import settings
from tinyshrink.routers import history_router, job_router, proxy_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(job_router.router)
app.include_router(history_router.router)
app.include_router(proxy_router.router)

# Persisted compressed images
Path(settings.artifacts_dir).mkdir(parents=True, exist_ok=True)
app.mount("/compressed", StaticFiles(directory=settings.artifacts_dir, check_dir=False), name="compressed")


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "endpoints": {
            "jobs": "/api/jobs",
            "url_job": "/api/jobs/url",
            "job_status": "/api/jobs/{job_id}",
            "retry": "/api/jobs/{job_id}/retry",
            "history": "/api/history",
            "stats": "/api/stats",
            "credential": "/api/credential",
            "shrink_file": "/api/tinypng/shrink/file",
            "shrink_url": "/api/tinypng/shrink/url",
            "output": "/api/tinypng/output",
            "compressed": "/api/compressed",
            "health": "/health",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tinyshrink.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
