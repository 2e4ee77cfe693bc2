"""Utility functions for the Meta ad publisher."""

from typing import Any, Dict
import os
import logging
import pathlib
import platform


# Configure logging to file
def setup_logging():
    """Set up logging to file for troubleshooting."""
    # Get platform-specific path for logs
    if platform.system() == "Windows":
        base_path = pathlib.Path(os.environ.get("APPDATA", ""))
    elif platform.system() == "Darwin":  # macOS
        base_path = pathlib.Path.home() / "Library" / "Application Support"
    else:  # Assume Linux/Unix
        base_path = pathlib.Path.home() / ".config"

    log_dir = pathlib.Path(os.environ.get("META_AD_PUBLISHER_LOG_DIR", base_path / "meta-ad-publisher"))
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "meta_ad_publisher.log"

    logger = logging.getLogger("meta-ad-publisher")
    logger.setLevel(logging.DEBUG)

    # Avoid stacking handlers when the module is reloaded
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        handler = logging.FileHandler(str(log_file), mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(handler)

    logger.info(f"Logging initialized. Log file: {log_file}")
    logger.info(f"Platform: {platform.system()} {platform.release()}")

    return logger

# Create the logger instance to be imported by other modules
logger = setup_logging()


def mask_token(params: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of request params that is safe to log."""
    return {k: "***TOKEN***" if k == "access_token" else v for k, v in params.items()}
