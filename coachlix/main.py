"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coachlix import __version__
from coachlix.api.endpoints import router
from coachlix.utils.logging import setup_logging

setup_logging()

# Create FastAPI application
app = FastAPI(
    title="Coachlix",
    description=(
        "A streaming AI fitness coach with persona routing, "
        "workout and diet planning tools, and nutrition lookup."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Chat",
            "description": (
                "Chat with the coach. Answers stream word by word as Server-Sent Events; "
                "the coach may call one data tool per turn."
            ),
        },
        {
            "name": "Health",
            "description": "Service health monitoring and fallback counters.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("coachlix.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
