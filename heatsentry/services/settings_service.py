"""
Settings Service - resolves operational settings from the `settings` table
"""
import math

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from heatsentry.errors import ConfigInvalidError, ConfigMissingError, PersistenceError
from heatsentry.schemas import PipelineSettings
from models import Setting

AGGREGATOR_URL_KEY = "hypertracker_api_url"
WHALE_THRESHOLD_KEY = "hypertracker_whale_threshold"


def get_setting(db: Session, key: str) -> str:
    try:
        row = db.query(Setting).filter(Setting.key == key).first()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to read setting {key}: {e}") from e
    if row is None or row.value is None:
        raise ConfigMissingError(key)
    return row.value


def parse_threshold(value: str) -> float:
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        raise ConfigInvalidError(WHALE_THRESHOLD_KEY, value) from None
    if math.isnan(threshold) or math.isinf(threshold):
        raise ConfigInvalidError(WHALE_THRESHOLD_KEY, value)
    return threshold


def load_pipeline_settings(db: Session) -> PipelineSettings:
    """
    Resolve the aggregator URL and whale threshold once, up front,
    so the pipeline itself never touches the settings table.
    """
    url = get_setting(db, AGGREGATOR_URL_KEY).strip()
    if not url.startswith(("http://", "https://")):
        raise ConfigInvalidError(AGGREGATOR_URL_KEY, url)

    threshold = parse_threshold(get_setting(db, WHALE_THRESHOLD_KEY))
    return PipelineSettings(aggregator_base_url=url.rstrip("/"), whale_threshold=threshold)
