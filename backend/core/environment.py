"""Environment loading and typed lookups for the plan parsing service.

Settings come from the process environment. For local runs, `.env` and then
`.env.local` in the working directory are loaded on top of it; the later file
wins. Nothing is loaded on import: the API app and the CLI call
`load_environment()` once at startup.

Variables read by the service:
    OPENAI_API_KEY            required for any model call
    PLAN_CLASSIFIER_MODEL     default gpt-4o-mini
    PLAN_EXTRACTION_MODEL     default gpt-4o
    PLAN_VISION_MODEL         default gpt-4o
    MAX_FILE_SIZE_MB          default 10
    MAX_CONCURRENT_SHEETS     default 4
    SHEET_TIMEOUT_SECONDS     default 60
    REQUEST_TIMEOUT_SECONDS   default 120
    ALLOWED_ORIGINS           comma separated CORS origins
    DEBUG                     verbose logging and tracebacks in 500 responses
"""

import os
import logging
from pathlib import Path
from typing import Callable, List, Optional, TypeVar, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

T = TypeVar('T')

ENV_FILES = (".env", ".env.local")
TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


def load_environment(env_dir: Optional[Union[str, Path]] = None) -> List[str]:
    """Load .env files from env_dir (default: cwd); returns the file names loaded"""
    base = Path(env_dir) if env_dir is not None else Path.cwd()

    loaded = []
    for name in ENV_FILES:
        path = base / name
        if not path.exists():
            continue
        load_dotenv(path, override=True)
        loaded.append(name)

    if loaded:
        logger.info(f"Environment loaded from: {', '.join(loaded)}")
    else:
        logger.debug(f"No .env files in {base}")
    return loaded


def _get_typed(key: str, default: T, convert: Callable[[str], T]) -> T:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return convert(raw.strip())
    except ValueError:
        logger.warning(f"Invalid value {raw!r} for {key}, using default: {default}")
        return default


def get_env_bool(key: str, default: bool = False) -> bool:
    """true/1/yes/on and false/0/no/off, case-insensitive; anything else is the default"""
    value = os.getenv(key, "").strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    return _get_typed(key, default, int)


def get_env_float(key: str, default: float = 0.0) -> float:
    return _get_typed(key, default, float)


def get_env_list(key: str, separator: str = ",", default: Optional[List[str]] = None) -> List[str]:
    """Split a separated variable into trimmed, non-empty items"""
    value = os.getenv(key, "")
    if not value.strip():
        return list(default or [])
    return [item.strip() for item in value.split(separator) if item.strip()]
