"""Run the BorrowTrack API with uvicorn. Host and port come from HOST / PORT."""
import uvicorn

from borrowtrack.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "borrowtrack.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
