import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .config import DEBUG_DIR, LOG_FILE, LOG_LEVEL

ROOT_LOGGER = "linkedin_profile_pkg"

_FORMAT = "[ %(asctime)s ] : %(levelname)s : %(name)s : %(message)s"


def setup_logging(level: str = LOG_LEVEL, log_file: Optional[str] = LOG_FILE) -> logging.Logger:
    """Attach console (and optional file) handlers to the package logger.

    Safe to call repeatedly: handlers are only installed once, and module
    loggers created with `logging.getLogger(__name__)` propagate here.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(_FORMAT, datefmt="%a %b %d %I:%M:%S %p %Y")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def add_debug(debug_list: List[str], tag: str) -> None:
    """Append a debug tag to the in-flight list.

    Using small, structured tags helps trace the executed strategies and
    decisions without exposing sensitive data.
    """
    debug_list.append(tag)


async def save_debug_files(page, prefix: str = "debug", debug_dir: str = DEBUG_DIR) -> Optional[dict]:
    """Save a full-page screenshot and HTML content for offline diagnostics.

    Returns a map with file paths or None if saving fails. Only called when
    an extractor comes back empty where results were plausible.
    """
    log = logging.getLogger(__name__)
    try:
        out = Path(debug_dir)
        out.mkdir(parents=True, exist_ok=True)
        ts = int(time.time() * 1000)
        screenshot_path = out / f"{prefix}_{ts}.png"
        html_path = out / f"{prefix}_{ts}.html"
        await page.screenshot(path=str(screenshot_path), full_page=True)
        content = await page.content()
        html_path.write_text(content, encoding="utf-8")
        log.info("📸 Saved diagnostic snapshot %s", screenshot_path)
        return {"screenshot": str(screenshot_path), "html": str(html_path)}
    except Exception as e:
        log.debug("Snapshot %s failed: %s", prefix, e)
        return None
