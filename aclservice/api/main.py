import logging
from typing import Optional

from fastapi import FastAPI

from aclservice.core.config import get_settings
from aclservice.api.deps import get_engine_config
from aclservice.api.routers import permissions
from recordacl import __version__
from recordacl.common.config import LoggingConfig
from recordacl.common.logger import LOGGER_PREFIX, setup_logger

settings = get_settings()


def configure_logging(
    config: LoggingConfig,
    level: Optional[str] = None,
    name: str = LOGGER_PREFIX,
) -> logging.Logger:
    """Set up engine logging from the YAML logging section.

    Args:
        config: Parsed logging section
        level: Overrides the configured level when set
        name: Logger to configure
    """
    return setup_logger(
        name,
        log_dir=config.log_dir,
        level=level or config.level,
        file_logging=config.file_logging,
        console_logging=config.console_logging,
    )


configure_logging(get_engine_config().logging, settings.log_level)

app = FastAPI(
    title=settings.app_name,
    description="Record-level access evaluation for CRM modules",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Include routers
app.include_router(permissions.router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
