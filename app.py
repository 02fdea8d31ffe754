"""
App assembly entry point.

Re-exports the FastAPI `app` from `compliance.api.main`; run directly to
serve it with uvicorn.
"""
import os

from compliance.api.main import app  # noqa: F401


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "compliance.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("APP_ENV", "development") != "production",
    )
