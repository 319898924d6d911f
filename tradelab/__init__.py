import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

__version__ = "0.3.0"

# Load environment variables early so TRADELAB_* settings are visible to local runs
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _detect_build_version() -> str:
    explicit = os.getenv("TRADELAB_VERSION")
    if explicit:
        return explicit
    return __version__


APP_VERSION = _detect_build_version()

# Library code logs through loguru; sinks are attached by logging_utils.setup_logging.
logger.disable("tradelab")
