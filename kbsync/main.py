import logging
from typing import Optional
from fastapi import FastAPI
from kbsync.config import get_settings
from kbsync.api.dependencies import Services, build_services
from kbsync.api.routes import credentials, discovery, matching, staged, units

settings = get_settings()

# Configure application logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Set log level for kbsync modules
logger = logging.getLogger("kbsync")
logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Knowledge unit matching and incremental content discovery",
        version="0.1.0",
    )
    app.state.services = services or build_services(settings)

    # Include routers
    app.include_router(credentials.router, prefix="/api", tags=["Credentials"])
    app.include_router(matching.router, prefix="/api/matching", tags=["Matching"])
    app.include_router(discovery.router, prefix="/api/discovery", tags=["Discovery"])
    app.include_router(staged.router, prefix="/api/staged", tags=["Staging"])
    app.include_router(units.router, prefix="/api/units", tags=["Knowledge Units"])

    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": "0.1.0",
            "endpoints": {
                "matching": "/api/matching",
                "discovery": "/api/discovery",
                "staged": "/api/staged",
                "units": "/api/units",
                "health": "/health",
                "docs": "/docs",
                "redoc": "/redoc",
            },
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": settings.app_name}

    return app


app = create_app()
