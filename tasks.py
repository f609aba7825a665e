import asyncio
import logging

import aiohttp

from celery_app import celery_app
from config import config
from database import get_db_session
from heatsentry.change_detection import ChangeDetector
from heatsentry.change_notifier import ChangeNotifier
from heatsentry.errors import HeatSentryError
from heatsentry.notifications import TelegramChannel
from heatsentry.pipeline import IngestionPipeline
from heatsentry.services.settings_service import load_pipeline_settings

# Setup Logging for Workers
logger = logging.getLogger("CeleryWorker")

async def run_ingestion(symbol: str) -> dict:
    """Resolve settings once, then run one ingestion for `symbol`."""
    try:
        with get_db_session() as db:
            settings = load_pipeline_settings(db)
    except HeatSentryError as e:
        logger.error(f"❌ Heatmap ingestion for {symbol} failed at load_settings: {type(e).__name__}: {e}")
        raise

    timeout = aiohttp.ClientTimeout(total=config.HTTP_TIMEOUT_SEC)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        pipeline = IngestionPipeline(settings, session=session)
        result = await pipeline.run(symbol)
    return result.model_dump()


async def run_change_detection(symbol: str) -> dict:
    # Fresh channel per run: the bot's HTTP pool is bound to the event loop.
    channel = TelegramChannel()
    try:
        detector = ChangeDetector(ChangeNotifier(channel, config.TELEGRAM_CHAT_IDS))
        result = await detector.run(symbol)
    finally:
        await channel.close()
    return result.model_dump()


@celery_app.task(name="heatmap.ingest")
def ingest_heatmap_task(symbol: str, then_detect: bool = False):
    """
    Fetch, filter and store one heatmap snapshot for `symbol`.
    Failures propagate so the run shows up as failed; the next scheduled
    tick is the retry.
    """
    logger.info(f"🔥 Heatmap ingestion for {symbol}...")
    result = asyncio.run(run_ingestion(symbol))
    if then_detect:
        detect_heatmap_changes_task.delay(symbol)
    return result


@celery_app.task(name="heatmap.detect_changes")
def detect_heatmap_changes_task(symbol: str):
    """Compare the two latest snapshots for `symbol` and alert on wall movement."""
    return asyncio.run(run_change_detection(symbol))
