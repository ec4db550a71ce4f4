from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from infoline import __version__
from infoline.core.config import get_settings
from infoline.core.logger import configure_from_settings
from infoline.api.routers import data_entries, approvals, categories, notifications, reports, health

settings = get_settings()
configure_from_settings(settings)

app = FastAPI(
    title=settings.app_name,
    description="School data collection and approval workflow",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(data_entries.router, prefix="/api")
app.include_router(approvals.router, prefix="/api")
app.include_router(categories.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
