"""
Uvicorn server runner.

Usage:
    python run.py

Environment variables (set in .env file):
    DEBUG=true - Enable debug logging
    PORT=8000 - Set server port (default: 8000)
    HOST=127.0.0.1 - Set server host (default: 127.0.0.1)
"""

import os

import uvicorn

from observatory.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    log_level = "debug" if settings.DEBUG else "info"

    print(f"Starting {settings.PROJECT_NAME} on {host}:{port}")

    uvicorn.run(
        "observatory.main:app",
        host=host,
        port=port,
        log_level=log_level,
        access_log=True,
    )
