from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import SCHEDULE_DATA_FILE, cors_origins
from .routes import router
from .state import get_store, init_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
  if get_store() is None:
    store = init_store(SCHEDULE_DATA_FILE)
    logger.info("schedule store ready at %s", store.path)
  yield


app = FastAPI(title="schedule-chat", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins or ["*"],
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)
