from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trekhub.booking_export.routes import router as booking_export_router
from trekhub.database import init_db
from trekhub.logging_config import configure_logging
from trekhub.settings import get_settings

settings = get_settings()
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.include_router(booking_export_router)


@app.get("/")
def root():
    """API info and links. Use /docs for interactive API docs."""
    return {
        "name": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "booking_export": {
            "export": "GET /api/admin/bookings/export?format=csv|json|excel|pdf (cookie: auth_session)",
            "filters": "status, startDate, endDate, trekSlug, specificUser",
            "cohorts": "userFilter=all|high_risk|medical_concerns|first_time|experienced",
        },
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
