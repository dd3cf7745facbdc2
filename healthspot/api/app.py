from contextlib import asynccontextmanager

from fastapi import FastAPI

from .routes import router
from ..core.orchestrator import close_session


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_session()


app = FastAPI(title="Healthspot Provider Map API", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")
