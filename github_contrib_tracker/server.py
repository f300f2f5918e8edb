"""
Server entry point: serves the dataset API and, unless API_ONLY is set, runs
the crawl pipeline on a fixed interval in a background thread.
"""
from contextlib import asynccontextmanager
import logging
import threading

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from github_contrib_tracker import config
from github_contrib_tracker.api import router as api_router
from github_contrib_tracker.pipeline import DataPipeline

logger = logging.getLogger(__name__)


def pipeline_loop(pipeline: DataPipeline, stop: threading.Event):
    while not stop.is_set():
        try:
            pipeline.run()
        except Exception as e:
            # The next scheduled run resumes from the persisted checkpoints.
            logger.error(f"Pipeline loop error: {e}")
        stop.wait(config.COLLECTION_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    stop = threading.Event()
    try:
        if not config.API_ONLY:
            thread = threading.Thread(target=pipeline_loop, args=(DataPipeline(), stop), daemon=True)
            thread.start()
            logger.info("Started background pipeline loop")
        else:
            logger.info("Running in API ONLY mode: pipeline/scheduler will not start.")
        yield
    finally:
        stop.set()
        logger.info("Application shutdown.")


app = FastAPI(
    title="GitHub Contribution Tracker",
    description="Contribution scores of GitHub users, crawled incrementally",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=config.API_PREFIX)

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    uvicorn.run("github_contrib_tracker.server:app", host="0.0.0.0", port=8000)
