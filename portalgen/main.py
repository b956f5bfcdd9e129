import logging

from fastapi import FastAPI
from portalgen.config import APP_NAME, LOG_LEVEL, PORTAL_GENERATOR_VERSION
from portalgen.routes import router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title=APP_NAME,
    version=PORTAL_GENERATOR_VERSION
)

# ---------------------------
# Routes
# ---------------------------
app.include_router(router)

# ---------------------------
# Health check
# ---------------------------
@app.get("/", tags=["health"])
def health():
    return {
        "status": "ok",
        "service": APP_NAME
    }
