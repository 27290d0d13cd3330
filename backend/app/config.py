import os
import logging
import sys
from typing import Optional

from core.environment import get_env_bool, get_env_list

DEBUG = get_env_bool("DEBUG", False)

ALLOWED_ORIGINS = get_env_list("ALLOWED_ORIGINS", default=[
    "http://localhost:3000",
    "http://localhost:3001",
])

API_PREFIX = os.getenv("API_PREFIX", "/api/v1/plans")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# HTTP client and PDF parser chatter; pdfminer logs every font lookup at DEBUG
QUIET_LOGGERS = ('urllib3', 'httpx', 'httpcore', 'openai', 'pdfminer', 'PIL')


def setup_logging(level: Optional[int] = None) -> logging.Logger:
    """Send service logs to stdout; DEBUG=true turns on debug output for our modules only"""
    if level is None:
        level = logging.DEBUG if DEBUG else logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger('planparse')
