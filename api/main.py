"""
Vehicle Import Partnership Ledger API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__

# Create FastAPI application
app = FastAPI(
    title="Vehicle Import Partnership Ledger API",
    description="Landed costs, profit distribution and reinvestment tracking for a vehicle import partnership",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins once the frontend has a fixed production domain
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "partnership-ledger-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Vehicle Import Partnership Ledger API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import analytics, costs, distributions, shipments, vehicles

app.include_router(vehicles.router, prefix="/api/v1", tags=["Vehicles"])
app.include_router(costs.router, prefix="/api/v1", tags=["Costs"])
app.include_router(shipments.router, prefix="/api/v1", tags=["Shipments"])
app.include_router(analytics.router, prefix="/api/v1", tags=["Analytics"])
app.include_router(distributions.router, prefix="/api/v1", tags=["Distributions"])


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
