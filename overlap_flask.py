"""Flask application setup and engine wiring for the overlap dev server.

This module is the configuration hub for the overlap development server
used by the rule editor. It provides:

    - The Flask application instance shared by the route module
    - ``configure_logging`` for consistent log output
    - Environment-driven settings (tables directory, rules file, fonts)
    - ``get_service``: the process-wide OverlapService, built lazily

Architecture:
    - overlap_flask.py: App instance, config, and service wiring (this module)
    - overlap_routes.py: JSON and SSE routes
    - build_overlap_table.py: Command-line table builder

Example:
    Run the dev server::

        from overlap_flask import app, configure_logging
        import overlap_routes  # noqa: F401 - registers routes

        configure_logging(level='DEBUG')
        app.run(port=5001)

Attributes:
    BASE_DIR (str): Directory containing this module.
    TABLES_DIR (str): Directory of serialized tables (OVERLAP_TABLES_DIR).
    RULES_PATH (str | None): Rule set JSON file (OVERLAP_RULES_PATH).
    FONTS_DIR (str): Directory of style fonts, one '<style>.ttf' or
        '<style>.otf' per style (OVERLAP_FONTS_DIR).
    RUNTIME_MODE (str): 'lookup' or 'runtime' (OVERLAP_RUNTIME_MODE).
    ENABLE_FALLBACK (bool): Live resolution on table misses
        (OVERLAP_ENABLE_FALLBACK).
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from flask import Flask

from overlap_lib.api import OverlapService
from overlap_lib.config import default_rule_set, load_rule_set
from overlap_lib.lookup import AccessorConfig, AccessorMode
from overlap_lib.utils.rendering import FontGlyphRasterizer

# Base directory for file paths
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

TABLES_DIR = os.environ.get('OVERLAP_TABLES_DIR', os.path.join(BASE_DIR, 'tables'))
RULES_PATH = os.environ.get('OVERLAP_RULES_PATH') or None
FONTS_DIR = os.environ.get('OVERLAP_FONTS_DIR', os.path.join(BASE_DIR, 'fonts'))
RUNTIME_MODE = os.environ.get('OVERLAP_RUNTIME_MODE', 'lookup')
ENABLE_FALLBACK = os.environ.get('OVERLAP_ENABLE_FALLBACK', '0').lower() in ('1', 'true', 'yes')

FONT_EXTENSIONS = ('.ttf', '.otf')

# Module logger
logger = logging.getLogger(__name__)


def configure_logging(level: str = 'INFO', log_file: str | None = None) -> None:
    """Configure application-wide logging.

    Args:
        level: Log level string ('DEBUG', 'INFO', 'WARNING', 'ERROR').
        log_file: Optional path to log file. If None, logs to stderr only.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s %(levelname)-8s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Set third-party loggers to WARNING to reduce noise
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    logger.info("Logging configured: level=%s, file=%s", level, log_file or 'stderr')


# Flask application
app = Flask(__name__)


def discover_fonts(fonts_dir: str) -> dict:
    """Map style ids to font files found in ``fonts_dir``.

    A file named ``straight.ttf`` registers style 'straight'. Variant fonts
    use a double underscore: ``straight__first.ttf`` registers
    'straight:first'.
    """
    fonts = {}
    directory = Path(fonts_dir)
    if not directory.is_dir():
        return fonts
    for path in sorted(directory.iterdir()):
        if path.suffix.lower() not in FONT_EXTENSIONS:
            continue
        style = path.stem.replace('__', ':')
        fonts[style] = str(path)
    return fonts


def create_service(tables_dir: str = TABLES_DIR, rules_path: str | None = RULES_PATH,
                   fonts_dir: str = FONTS_DIR, mode: str = RUNTIME_MODE,
                   enable_fallback: bool = ENABLE_FALLBACK) -> OverlapService:
    """Build an OverlapService from directory and file settings."""
    rules = load_rule_set(rules_path) if rules_path else default_rule_set()
    fonts = discover_fonts(fonts_dir)
    rasterizer = FontGlyphRasterizer(fonts) if fonts else None
    config = AccessorConfig(mode=AccessorMode(mode), enable_fallback=enable_fallback)

    service = OverlapService(rules, rasterizer=rasterizer, config=config)
    loaded = service.registry.load_directory(tables_dir)
    logger.info("Overlap service ready: %d tables, %d fonts, mode=%s, fallback=%s",
                loaded, len(fonts), mode, enable_fallback)
    return service


# Lazily-built service shared by all requests
_service = None
_service_lock = threading.Lock()


def get_service() -> OverlapService:
    """Return the process-wide OverlapService, building it on first use."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = create_service()
    return _service


def set_service(service: OverlapService | None) -> None:
    """Replace the process-wide service (tests and embedding)."""
    global _service
    with _service_lock:
        _service = service
