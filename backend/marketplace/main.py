import logging
import sqlite3
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.config import settings
from marketplace.database import MIGRATIONS, init_db
from marketplace.errors import MarketplaceError
from marketplace.routers import (
    auth,
    jobs,
    notifications,
    payments,
    professionals,
    quotations,
    reviews,
    services,
    users,
)
from marketplace.services.auth_service import token_store
from marketplace.services.notification_service import EventDispatcher, log_event

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("marketplace")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create a fresh database, or migrate and integrity-check an existing one
    if not settings.db_path.exists():
        init_db(settings.db_path)
        logger.info("Created database at %s", settings.db_path)
    else:
        try:
            conn = sqlite3.connect(str(settings.db_path))
            for migration in MIGRATIONS:
                try:
                    conn.execute(migration)
                    conn.commit()
                except sqlite3.OperationalError:
                    pass  # already applied
            result = conn.execute("PRAGMA integrity_check").fetchone()
            conn.close()
            if result and result[0] == "ok":
                logger.info("Database integrity check passed.")
            else:
                logger.error("DATABASE INTEGRITY CHECK FAILED: %s", result)
        except sqlite3.Error as exc:
            logger.error("Could not run startup migration/integrity check: %s", exc)
    yield
    # Shutdown: drop all sessions
    token_store.clear()


app = FastAPI(
    title="Local Services Marketplace",
    description="Clients post jobs, professionals quote on them, jobs run through to payment and review",
    version="0.1.0",
    lifespan=lifespan,
)

# External delivery hooks (push, email) subscribe here; the default only logs.
app.state.dispatcher = EventDispatcher()
app.state.dispatcher.subscribe(log_event)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(users.router, prefix=settings.api_prefix)
app.include_router(professionals.router, prefix=settings.api_prefix)
app.include_router(services.router, prefix=settings.api_prefix)
app.include_router(jobs.router, prefix=settings.api_prefix)
app.include_router(quotations.router, prefix=settings.api_prefix)
app.include_router(reviews.router, prefix=settings.api_prefix)
app.include_router(payments.router, prefix=settings.api_prefix)
app.include_router(notifications.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
