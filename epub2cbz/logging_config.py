from __future__ import annotations

"""Central logging configuration for epub2cbz.

Import and call :func:`setup_logging` at application start-up.
"""

import copy
import logging
import logging.config
import os

from epub2cbz.config import ConfigManager

__all__ = ["setup_logging"]

_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application using the YAML configuration.

    *verbose* lowers the console handler to INFO so per-file progress and
    skipped pages are shown.
    """
    log_dir = os.environ.get("EPUB2CBZ_LOG_DIR", "logs")
    log_file = os.path.join(log_dir, "app.log")

    try:
        logging_config = copy.deepcopy(ConfigManager().get_logging_config())

        if logging_config and isinstance(logging_config, dict) and logging_config.get("version"):
            handlers = logging_config.get("handlers", {})
            if "file" in handlers:
                os.makedirs(log_dir, exist_ok=True)
                handlers["file"]["filename"] = log_file
            if verbose and "console" in handlers:
                handlers["console"]["level"] = "INFO"

            logging.config.dictConfig(logging_config)
            logging.getLogger(__name__).debug("===== Logging initialised from config files =====")
        else:
            _setup_minimal_logging(verbose)
    except (OSError, ValueError, TypeError, AttributeError, ImportError) as exc:
        print(f"Error loading logging config: {exc}")
        _setup_minimal_logging(verbose)

    _apply_debug_overrides()


def _setup_minimal_logging(verbose: bool = False) -> None:
    """Set up minimal console-only logging when config is unavailable."""
    minimal_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': _LOG_FORMAT,
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': 'INFO' if verbose else 'WARNING',
            },
        },
        'root': {
            'level': 'INFO',
            'handlers': ['console'],
        },
    }

    logging.config.dictConfig(minimal_config)
    logging.getLogger(__name__).warning("===== Logging initialised with minimal fallback (config error) =====")


def _apply_debug_overrides() -> None:
    """Apply environment-driven module-specific debug overrides.

    Supports ``EPUB2CBZ_DEBUG_MODULES=comma,separated,logger,names`` which
    sets DEBUG for each listed logger and makes sure it has a handler that
    emits DEBUG records.
    """
    extra_modules = os.environ.get('EPUB2CBZ_DEBUG_MODULES', '').strip()
    targets = [m.strip() for m in extra_modules.split(',') if m.strip()]
    for name in targets:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        has_debug_handler = any(h.level <= logging.DEBUG for h in logger.handlers)
        if not has_debug_handler:
            h = logging.StreamHandler()
            h.setLevel(logging.DEBUG)
            h.setFormatter(logging.Formatter(_LOG_FORMAT))
            logger.addHandler(h)
        logger.info("Debug override active for logger '%s'", name)
