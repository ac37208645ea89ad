from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session

from . import config
from .auth import hash_password
from .crud import ensure_admin
from .database import engine, init_db
from .logger import logger
from .routers import (
    audit_log, auth, contract_configs, contract_groups, goals,
    locations, records, reports, services, units, users,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if config.ADMIN_EMAIL and config.ADMIN_PASSWORD:
        with Session(engine) as session:
            ensure_admin(session, config.ADMIN_EMAIL, hash_password(config.ADMIN_PASSWORD))
        logger.info(f"Admin account ready: {config.ADMIN_EMAIL}")
    logger.info(f"{config.APP_NAME} v{config.APP_VERSION} started")
    yield


app = FastAPI(title=config.APP_NAME, version=config.APP_VERSION, lifespan=lifespan)

# CORS
if config.ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Static uploads
config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount(config.UPLOAD_URL_PREFIX, StaticFiles(directory=str(config.UPLOAD_DIR)), name="uploads")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/healthz")
def healthz():
    return {"ok": True}

@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs")

@app.get("/favicon.ico", include_in_schema=False)
def favicon():
    return Response(status_code=204)


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(units.router)
app.include_router(services.router)
app.include_router(locations.router)
app.include_router(records.router)
app.include_router(contract_groups.router)
app.include_router(contract_configs.router)
app.include_router(goals.router)
app.include_router(audit_log.router)
app.include_router(reports.router)
