import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lawdesk.app.api.routes.cases import router as cases_router


logger = logging.getLogger(__name__)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

DEV_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


def _allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS")
    origins = list(DEV_ORIGINS) if raw is None else [o.strip() for o in raw.split(",") if o.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS is set but lists no origins.")
    if not set(DEV_ORIGINS) & set(origins):
        logger.info("Case API CORS allowlist excludes the local web client: %s", origins)
    return origins


app = FastAPI(title="Lawdesk Cases API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "X-Owner-Uid", "X-Organization-Id", "X-User-Id"],
    # Browsers need this to read the back-off hint on 409 allocation conflicts.
    expose_headers=["Retry-After"],
)

app.include_router(cases_router)
