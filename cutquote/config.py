# config.py
# Process configuration for cutquote, read from the environment (and .env if present).
# Pricing settings (markup, min charge, currency) are NOT read here; they come from the
# pricing-table store as a Settings snapshot per request.

import os
import logging
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

LOG_LEVEL = os.getenv('CUTQUOTE_LOG_LEVEL', 'INFO').upper()
LOG_FILE = os.getenv('CUTQUOTE_LOG_FILE', '')
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

DEFAULT_CURRENCY = os.getenv('CUTQUOTE_CURRENCY', 'USD')

# Geometry extraction
MIN_CIRCLE_SEGMENTS = 32
CIRCLE_SEGMENTS = int(os.getenv('CUTQUOTE_CIRCLE_SEGMENTS', 64))
INCLUDE_BULGE_ARCS = os.getenv('CUTQUOTE_INCLUDE_BULGE_ARCS', '1') in ['1', 'true', 'True']
AREA_MODE = os.getenv('CUTQUOTE_AREA_MODE', 'bbox').lower()
SKIP_LAYERS = [l.strip() for l in os.getenv('CUTQUOTE_SKIP_LAYERS', '').split(',') if l.strip()]
DEFAULT_UNIT_SCALE = float(os.getenv('CUTQUOTE_DEFAULT_UNIT_SCALE', 1.0))

# Pricing-table store
PRICING_TABLE_PATH = os.getenv('CUTQUOTE_PRICING_TABLE', '')
SETTINGS_PATH = os.getenv('CUTQUOTE_SETTINGS_FILE', '')

_logging_configured = False


def configure_logging(level=None, log_file=None):
    """Configure the root logger once for the process."""
    global _logging_configured
    if _logging_configured:
        return
    handlers = [logging.StreamHandler()]
    log_file = LOG_FILE if log_file is None else log_file
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    logging.basicConfig(
        level=getattr(logging, level or LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )
    _logging_configured = True
