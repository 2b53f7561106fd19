"""
Development server for the KB Sync API.

Usage:
    python run.py

Reads HOST, PORT and DEBUG from the environment or .env (see kbsync.config).
DEBUG=true turns on debug logging and auto-reload.
"""

import uvicorn

from kbsync.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    log_level = "debug" if settings.debug else "info"

    print(f"Starting {settings.app_name} on http://{settings.host}:{settings.port}")
    print(f"Interactive docs: http://{settings.host}:{settings.port}/docs")

    uvicorn.run(
        "kbsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=log_level,
        access_log=True,
    )
