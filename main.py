"""
main.py

Prepwise exam server entry point.
"""

import os
import sys
import logging

# ── module path (must stay at the top) ──────────────────────────────────────
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

from config import BASE_DIR, LOG_FILE, DEFAULT_HOST, DEFAULT_PORT

# ── logging ─────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # log file locked by another process: console only
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


def _run_server(host: str, port: int) -> None:
    import uvicorn
    from api.app import create_app

    logger.info(f"Starting uvicorn on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level="warning")


if __name__ == "__main__":
    logger.info("=== Prepwise Exam started ===")
    os.chdir(BASE_DIR)

    try:
        _run_server(DEFAULT_HOST, DEFAULT_PORT)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
