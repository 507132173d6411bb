import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from eventhub.common.config import get_settings
from eventhub.auth import router as auth_router
from eventhub.events.routers import manage as events_manage, public as events_public
from eventhub.participants import router as participants_router
from eventhub.organizers import router as organizers_router
from eventhub.admin import router as admin_router
from eventhub.forum import router as forum_router
from eventhub.feedback import router as feedback_router


settings = get_settings()

logging.basicConfig(level=logging.INFO)

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers - all under /api prefix
app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
app.include_router(events_manage.router, prefix="/api/events", tags=["events-manage"])
app.include_router(events_public.router, prefix="/api/events", tags=["events"])
app.include_router(forum_router.router, prefix="/api/events/{event_id}/forum", tags=["forum"])
app.include_router(feedback_router.router, prefix="/api/events/{event_id}/feedback", tags=["feedback"])
app.include_router(participants_router.router, prefix="/api/participant", tags=["participant"])
app.include_router(organizers_router.router, prefix="/api/organizer", tags=["organizer"])
app.include_router(admin_router.router, prefix="/api/admin", tags=["admin"])

# Payment proofs stored on local disk
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/api/health", tags=["system"])
async def health() -> dict:
    """Health check endpoint that pings the database to keep connections warm."""
    from sqlalchemy import text
    from eventhub.common.db import get_async_engine

    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)}"

    return {"status": "ok", "database": db_status}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
