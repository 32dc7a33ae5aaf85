from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auditlog.api.v1.api import api_router
from auditlog.core.audit import AdminLogRecorder
from auditlog.core.config import settings
from auditlog.core.logging import configure_logging
from auditlog.core.seed import ensure_admin_account
from auditlog.db.session import SessionLocal
from auditlog.services.admin_logs.store import AdminLogStore

configure_logging(settings.LOG_LEVEL)


def seed_dev_data():
    if not settings.SEED_ENABLED:
        return

    db = SessionLocal()
    try:
        ensure_admin_account(db, recorder=AdminLogRecorder(AdminLogStore(SessionLocal)))
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed_dev_data()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/healthz")
def healthz():
    return {"status": "ok"}
