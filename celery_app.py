import logging

import colorlog
from celery import Celery
from celery.signals import worker_init

from config import config

# Configure Colored Logging
handler = colorlog.StreamHandler()
handler.setFormatter(colorlog.ColoredFormatter(
    '%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    log_colors={
        'DEBUG': 'cyan',
        'INFO': 'green',
        'WARNING': 'yellow',
        'ERROR': 'red',
        'CRITICAL': 'red,bg_white',
    }
))
logger = colorlog.getLogger()
if not logger.handlers:
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if config.DEBUG else logging.INFO)

celery_app = Celery(
    "heatsentry",
    broker=config.REDIS_URL,
    backend=config.REDIS_URL,
    include=['tasks']
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Results
    result_expires=3600,  # 1 hour

    # Worker settings
    worker_prefetch_multiplier=1,  # One run at a time per worker slot
    task_acks_late=True,
    worker_hijack_root_logger=False,  # keep the colorlog handler above

    task_reject_on_worker_lost=True,
    task_acks_on_failure_or_timeout=True,

    # Timezone
    timezone="UTC",
    enable_utc=True,
)

# Each tick ingests a fresh snapshot; the ingestion task enqueues change
# detection for the same symbol once its write has committed.
celery_app.conf.beat_schedule = {
    f"heatmap-{symbol.lower()}": {
        "task": "heatmap.ingest",
        "schedule": config.HEATMAP_SCHEDULE_SEC,
        "args": (symbol,),
        "kwargs": {"then_detect": True},
        "options": {"expires": config.HEATMAP_SCHEDULE_SEC},
    }
    for symbol in config.HEATMAP_SYMBOLS
}


@worker_init.connect
def validate_config_on_worker_init(**_kwargs):
    """Log missing credentials once when a worker process starts."""
    return config.validate()
