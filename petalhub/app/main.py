import logging

from fastapi import FastAPI

from petalhub.app.api.errors import register_exception_handlers
from petalhub.app.api.v1.router import router as v1_router
from petalhub.app.core.config import get_settings
from petalhub.app.core.logging import configure_logging
from petalhub.app.db.seed import run_seed
from petalhub.app.db.session import init_db

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name, version="0.1.0")
register_exception_handlers(app)
app.include_router(v1_router, prefix="/v1")


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    if settings.seed_on_startup:
        run_seed()
    logger.info("%s started (env=%s)", settings.app_name, settings.env)
