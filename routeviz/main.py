from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api import health, routes
from .config import settings
from .logging_config import setup_logging

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="Route Visualizer API",
    description="Multi-hop swap route quotes, ranking and graph views",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
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
app.include_router(health.router, tags=["Health"])
app.include_router(routes.router, tags=["Routes"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Route Visualizer API",
        "version": "0.1.0",
        "description": "Multi-hop swap route quotes, ranking and graph views",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "routeviz.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
