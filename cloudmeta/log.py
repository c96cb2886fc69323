# This file is part of cloudmeta. See LICENSE file for license information.

import logging
import sys

DEFAULT_LOG_FORMAT = "%(asctime)s - %(filename)s[%(levelname)s]: %(message)s"
DEFAULT_LOG_LEVEL = "WARNING"


def setup_logging(cfg=None):
    """Configure the root logger from a config mapping.

    Recognised keys are ``log_level`` (a level name or number) and
    ``log_format``. Repeated calls replace the previously installed
    handler.
    """
    cfg = cfg or {}
    level = cfg.get("log_level", DEFAULT_LOG_LEVEL)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if not isinstance(level, int):
        raise ValueError("Invalid log_level: %s" % cfg.get("log_level"))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(cfg.get("log_format", DEFAULT_LOG_FORMAT))
    )
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_cloudmeta_handler", False):
            root.removeHandler(h)
    handler._cloudmeta_handler = True
    root.addHandler(handler)
    root.setLevel(level)
