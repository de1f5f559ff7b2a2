from structlog import get_logger

from app.config import get_settings
from app.fastapi_application import create_application
from app.logging import init_logging

settings = get_settings()
init_logging(settings)
logger = get_logger()
logger.info("Starting Country Service API")

app = create_application(settings)
