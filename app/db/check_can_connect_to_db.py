import logging
from typing import Optional

from sqlalchemy import text
from tenacity import after_log, before_log, retry, stop_after_attempt, wait_fixed

from app.config import Settings, get_settings
from app.db.session import get_session_maker

logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 5 minutes
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.DEBUG),
    after=after_log(logger, logging.INFO),
    reraise=True,
)
def check_can_connect_to_database(settings: Optional[Settings] = None) -> None:
    session_maker = get_session_maker(settings)
    with session_maker() as session:
        logger.debug("Checking DB is awake and accepting connections")
        session.execute(text("SELECT 1"))
        logger.info("Database is responding to queries")


def check_database_ready_with_retry(settings: Optional[Settings] = None):
    logger.info("Waiting for database to accept connections")
    check_can_connect_to_database(settings)
    logger.info("Database ready")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    check_database_ready_with_retry(get_settings())
