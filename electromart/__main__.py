"""Run the backend with uvicorn: python -m electromart"""
import uvicorn

from .main import settings

if __name__ == "__main__":
    uvicorn.run(
        "electromart.main:app",
        host="0.0.0.0",
        port=settings.server.port,
        reload=not settings.server.is_production,
    )
