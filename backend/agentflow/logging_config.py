"""
Logging setup for agentflow
Colored, class.function-prefixed console output with highlighting for run ids and statuses
"""

import logging
import os
import re
import sys
from datetime import datetime
from typing import Optional


class ColorCodes:
    """ANSI color codes for terminal output"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'

    BRIGHT_BLACK = '\033[90m'
    BRIGHT_RED = '\033[91m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'

    BG_WHITE = '\033[47m'


LEVEL_COLORS = {
    'DEBUG': ColorCodes.BRIGHT_BLACK,
    'INFO': ColorCodes.BRIGHT_BLUE,
    'WARNING': ColorCodes.BRIGHT_YELLOW,
    'ERROR': ColorCodes.BRIGHT_RED,
    'CRITICAL': ColorCodes.RED + ColorCodes.BG_WHITE + ColorCodes.BOLD,
}

SUCCESS_KEYWORDS = ['completed', 'started', 'succeeded', 'running']
ERROR_KEYWORDS = ['error', 'failed', 'denied', 'exceeded', 'timeout']


class EnhancedFormatter(logging.Formatter):
    """Formatter with optional colors and a [module.function] prefix"""

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        reset = ColorCodes.RESET if self.use_colors else ''

        level_str = f"[{record.levelname:8}]"
        if self.use_colors:
            level_str = f"{LEVEL_COLORS.get(record.levelname, ColorCodes.WHITE)}{level_str}{reset}"

        class_func = f"{record.module}.{record.funcName}"
        if self.use_colors:
            class_func = (
                f"{ColorCodes.BRIGHT_CYAN}{record.module}{ColorCodes.WHITE}."
                f"{ColorCodes.BRIGHT_GREEN}{record.funcName}{reset}"
            )

        message = record.getMessage()
        if self.use_colors:
            message = self._highlight(message)

        dim = ColorCodes.DIM if self.use_colors else ''
        formatted = " ".join([f"{dim}{timestamp}{reset}", level_str, f"[{class_func}]", message])

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted

    def _highlight(self, message: str) -> str:
        """Highlight quoted values, numbers and status keywords"""
        message = re.sub(
            r"'([^']*)'",
            f"{ColorCodes.BRIGHT_YELLOW}'\\1'{ColorCodes.RESET}",
            message
        )
        message = re.sub(
            r'\b(\d+(?:\.\d+)?)\b',
            f'{ColorCodes.BRIGHT_MAGENTA}\\1{ColorCodes.RESET}',
            message
        )
        message = re.sub(
            r'\b(https?://[^\s]+)',
            f'{ColorCodes.BRIGHT_BLUE}\\1{ColorCodes.RESET}',
            message
        )
        for keyword in SUCCESS_KEYWORDS:
            message = re.sub(
                rf'\b({keyword})\b',
                f'{ColorCodes.BRIGHT_GREEN}\\1{ColorCodes.RESET}',
                message,
                flags=re.IGNORECASE
            )
        for keyword in ERROR_KEYWORDS:
            message = re.sub(
                rf'\b({keyword})\b',
                f'{ColorCodes.BRIGHT_RED}\\1{ColorCodes.RESET}',
                message,
                flags=re.IGNORECASE
            )
        return message


def _colors_enabled() -> bool:
    if os.getenv('NO_COLOR') is not None:
        return False
    force_colors = os.getenv('FORCE_COLOR', '').lower() in ('1', 'true', 'yes')
    auto_colors = sys.stderr.isatty() and os.getenv('TERM') != 'dumb'
    return force_colors or auto_colors


def configure_logging(level: Optional[str] = None, use_colors: Optional[bool] = None) -> logging.Logger:
    """
    Install the enhanced formatter on the package logger.

    Safe to call more than once; existing handlers are replaced.
    """
    logger = logging.getLogger("agentflow")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(EnhancedFormatter(use_colors=_colors_enabled() if use_colors is None else use_colors))
    logger.addHandler(handler)

    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logger.setLevel(getattr(logging, log_level, logging.INFO))
    logger.propagate = False

    # uvicorn access logs are noisy next to run logs
    for logger_name in ['uvicorn', 'uvicorn.error', 'uvicorn.access']:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return logger
