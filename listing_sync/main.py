from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from listing_sync.api.routes import router as api_router
from listing_sync.db import Base, engine, wait_for_database
from listing_sync.services import build_registries
from listing_sync import scheduler
from listing_sync.utils import logger
import listing_sync.models  # noqa: F401 ensure models are imported so tables are known

# create FastAPI instance
app = FastAPI(title="listing-sync")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
# one source-name registry per schema variant, shared by uploads and the inbox poller
app.state.registries = build_registries()
app.include_router(api_router)


@app.on_event("startup")
def on_startup():
    wait_for_database()
    Base.metadata.create_all(bind=engine)
    scheduler.start(app.state.registries)
    logger.info("Service started")


@app.on_event("shutdown")
def on_shutdown():
    scheduler.stop()
