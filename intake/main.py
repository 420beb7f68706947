"""Legal intake API entrypoint."""

from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from intake import settings
from intake.admin.router import router as admin_router
from intake.live.engine import get_engine
from intake.live.router import router as chat_router
from intake.registry import init_db
from intake.state.schema_registry import get_catalog

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _sweep_sessions(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(get_engine().sweep_expired)
        except Exception:
            logger.exception("Session sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    get_catalog()
    sweeper = asyncio.create_task(_sweep_sessions(settings.SESSION_SWEEP_INTERVAL_SECONDS))
    yield
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper


app = FastAPI(
    title="Legal Intake API",
    description="Visitor message → category → field collection → lead marketplace",
    lifespan=lifespan,
)
app.include_router(chat_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}
