"""
PA Pedia - Configuration
=========================
Paths and runtime settings. Environment variables override the defaults.
"""

import logging
import os
from pathlib import Path

DATA_DIR = Path(__file__).parent.parent / "data"
FACTIONS_DIR = Path(os.getenv("PA_PEDIA_FACTIONS_DIR", str(DATA_DIR / "factions")))
COMPARISONS_DIR = DATA_DIR / "comparisons"

LOG_LEVEL = os.getenv("PA_PEDIA_LOG_LEVEL", "WARNING").upper()
PORT = int(os.getenv("PA_PEDIA_PORT", "8080"))

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = LOG_LEVEL):
    """Install a root handler. Entry points only; library modules never call this."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING),
                        format=LOG_FORMAT)
