from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from labslot.api.routes import activity, events, health, layout, rooms
from labslot.core.config import get_settings
from labslot.core.exceptions import AppError
from labslot.db.bootstrap import ensure_schema
from labslot.services.notification_hub import NotificationHub

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_schema()
    app.state.notification_hub = NotificationHub()
    yield
    app.state.notification_hub = None


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(events.router, prefix=f"{settings.api_prefix}/events", tags=["events"])
app.include_router(layout.router, prefix=settings.api_prefix, tags=["layout"])
app.include_router(rooms.router, prefix=f"{settings.api_prefix}/rooms", tags=["rooms"])
app.include_router(activity.router, prefix=settings.api_prefix, tags=["activity"])
