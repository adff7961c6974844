from fastapi import FastAPI
import logging

from void_archive.api.routes import router
from void_archive.content.singleton import init_content

app = FastAPI(title="void-archive", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    # Fail fast on broken narrative content instead of on the first command.
    content = init_content()
    logger.info("Loaded %d narrative scripts", len(content.scripts))


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "void-archive", "version": "0.1.0"}
