"""FastAPI application for the delivery route planner."""

import logging

from fastapi import FastAPI

from backend.config import settings
from backend.api.routes import router as api_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Delivery Route Planner",
    description="Plan and order multi-stop delivery routes",
    version="0.1.0",
)

# Include API routes
app.include_router(api_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
