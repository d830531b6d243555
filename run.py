"""Run the FastAPI application with uvicorn."""

import uvicorn
import sys

from interview_catalog.utils.config import get_settings


if __name__ == "__main__":
    settings = get_settings()
    try:
        uvicorn.run(
            "interview_catalog.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.debug,
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\nServer stopped")
        sys.exit(0)
