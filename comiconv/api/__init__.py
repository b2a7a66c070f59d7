"""
API module for the comiconv conversion server.

Remote converters ship each page here instead of encoding it themselves.
"""
import logging
import os
import time
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from comiconv import __version__
from comiconv.api.v1 import router as v1_router

# Set up logging
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="comiconv Conversion Server",
    description="""
    Image transcoding service for comic-book archive converters:
    - Converts single pages to JPEG, PNG, WEBP, AVIF or JPEG XL
    - Content hashes verify every upload and every result

    Jobs are stateless, so a client may safely replay a request.
    """,
    version=__version__
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
app.include_router(v1_router, prefix="/api")


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unexpected errors."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred", "error_kind": "internal_error", "error": str(exc)}
    )


# Health check endpoints
@app.get("/health")
async def health_check():
    """Check if the API is running."""
    return {"status": "healthy", "version": __version__}


@app.get("/health/detailed")
async def detailed_health_check():
    """
    Provides detailed health information including system metrics and codec availability.
    """
    import psutil
    import platform
    import shutil
    import tempfile
    from PIL import Image, features
    from comiconv.core.transcoder import supported_target_formats
    from comiconv.models.remote import SystemMetrics
    from comiconv.utils.metrics import get_cpu_mem

    # System info
    usage = SystemMetrics(**get_cpu_mem(), disk_usage=psutil.disk_usage('/').percent)
    system_info = {
        **usage.model_dump(),
        "cpu_count": psutil.cpu_count(),
        "python_version": platform.python_version(),
        "platform": platform.platform()
    }

    # Check codecs
    encodable = {fmt.value for fmt in supported_target_formats()}
    codec_status = {
        "jpeg": {"status": "ok" if features.check("jpg") else "error"},
        "png": {"status": "ok" if features.check("zlib") else "error"},
        "webp": {"status": "ok" if "webp" in encodable else "unavailable"},
        "avif": {"status": "ok" if "avif" in encodable else "unavailable"},
        "jxl": {"status": "ok" if "JXL" in Image.SAVE else "unavailable"},
    }

    # Check temp directory (7z members are staged there)
    temp_dir = tempfile.gettempdir()
    temp_status = {"path": temp_dir, "exists": os.path.exists(temp_dir)}
    if temp_status["exists"]:
        temp_status["writable"] = os.access(temp_dir, os.W_OK)
        temp_status["free_space_mb"] = shutil.disk_usage(temp_dir).free / (1024 * 1024)

    all_ok = all(status["status"] == "ok" for status in (codec_status["jpeg"], codec_status["png"]))
    return {
        "status": "healthy" if all_ok and temp_status.get("writable", False) else "degraded",
        "version": __version__,
        "system": system_info,
        "codecs": codec_status,
        "temp_directory": temp_status,
        "timestamp": time.time()
    }
