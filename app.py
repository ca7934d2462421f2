import os
import re
import logging
import importlib
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# ---------------- .env ----------------
# antes de importar módulos que leen os.getenv al cargarse
here = Path(__file__).parent
for env_path in (here / ".env", here.parent / ".env"):
    if env_path.exists():
        load_dotenv(env_path, override=False)

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from db import init_db
from scheduler import start_scheduler
from social.credentials import CredentialStore

# ---------------- logging --------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)
log = logging.getLogger("app")

VERSION = "1.0.0"

# ---------------- app ------------------
app = FastAPI(title="SocialBoost Publisher", version=VERSION)
app.state.credentials = CredentialStore()

# ---------------- CORS -----------------
raw_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
allow_all = os.getenv("CORS_ALLOW_ALL", "false").lower() == "true"
origin_regex_str: Optional[str] = os.getenv("CORS_ORIGIN_REGEX") or None

if not raw_origins and not allow_all:
    raw_origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else raw_origins,
    allow_origin_regex=None if allow_all else origin_regex_str,
    allow_credentials=not allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,
)

def _origin_allowed(origin: Optional[str]) -> bool:
    if allow_all:
        return True
    if not origin:
        return False
    if origin in raw_origins:
        return True
    return bool(origin_regex_str and re.match(origin_regex_str, origin))

@app.middleware("http")
async def catch_unhandled(request: Request, call_next):
    try:
        resp = await call_next(request)
    except Exception as e:
        log.exception("Unhandled error: %s", e)
        resp = Response("Internal Server Error", status_code=500)
        # la respuesta armada acá no pasa por CORSMiddleware
        origin = request.headers.get("origin")
        if _origin_allowed(origin):
            resp.headers["Access-Control-Allow-Origin"] = "*" if allow_all else (origin or "")
            resp.headers["Vary"] = "Origin"
    return resp

# -------- include routers --------
ROUTER_MODULES = [
    "routers.publish",
    "routers.connections",
    "routers.posts",
    "routers.drafts",
    "routers.content",
]

for m in ROUTER_MODULES:
    mod = importlib.import_module(m)
    app.include_router(mod.router)
    log.info("Router cargado: %s", m)

@app.on_event("startup")
def on_startup():
    init_db()
    app.state.scheduler_stop = start_scheduler(app.state.credentials)
    log.info("CORS allow_all=%s origins=%s", allow_all, ['*'] if allow_all else raw_origins)
    log.info("Backend listo.")

@app.on_event("shutdown")
def on_shutdown():
    stop = getattr(app.state, "scheduler_stop", None)
    if stop is not None:
        stop.set()

@app.get("/api/health")
def health():
    return {"ok": True, "version": VERSION}
