"""
comiconv Conversion Server Entry Point

This file serves as the main entry point for the conversion server,
importing and running the FastAPI application defined in the comiconv.api package.

Run with uvicorn:
    uvicorn main:app --reload
"""
import os
import logging
import shutil
import sys
from comiconv.api import app

# Configure logging based on environment variables
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Configure root logger
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format=LOG_FORMAT,
    stream=sys.stdout
)

# Set up logger
logger = logging.getLogger(__name__)

# Check that required dependencies are installed
try:
    import PIL
    import pillow_jxl
    import py7zr
    import rarfile
    import httpx
    import psutil
    import numpy
    import skimage
    logger.info("All required dependencies are available")
except ImportError as e:
    logger.critical(f"Missing required dependency: {str(e)}")
    logger.critical("Please install all dependencies: pip install -e .")
    sys.exit(1)

# Check for a RAR extraction tool
RAR_TOOLS = ("unrar", "unar", "bsdtar")
rar_tool = next((tool for tool in RAR_TOOLS if shutil.which(tool)), None)
if rar_tool:
    logger.info(f"{rar_tool} is installed; CBR archives can be read")
else:
    logger.warning(f"None of {', '.join(RAR_TOOLS)} is installed. CBR archives cannot be read.")

# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    # Get configuration from environment variables
    port = int(os.environ.get("PORT", 8000))
    workers = int(os.environ.get("WORKERS", 1))
    debug = os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")

    logger.info(f"Starting comiconv conversion server on port {port} with {workers} workers")

    uvicorn.run(
        "comiconv.api:app",
        host="0.0.0.0",
        port=port,
        workers=workers,
        reload=debug
    )
