"""
Logging for the reelcast pipeline

All pipeline loggers are children of 'reelcast'. The SDKs we call through
(boto3, fal-client over httpx, aiohttp) get their own level so a DEBUG run
shows our job events without every HTTP round trip.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Dict

LOGGER_NAME = 'reelcast'
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Client libraries that log each request at INFO/DEBUG
THIRD_PARTY_LEVELS: Dict[str, str] = {
    'botocore': 'WARNING',
    'boto3': 'WARNING',
    's3transfer': 'WARNING',
    'urllib3': 'WARNING',
    'httpx': 'WARNING',
    'aiohttp.access': 'WARNING',
}


def _level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def setup_logging(config: 'Config') -> logging.Logger:
    """Configure the 'reelcast' logger from config.logging

    Keys: level, format, file, max_size_mb, backup_count, console and
    third_party (logger name -> level, merged over the defaults).
    """
    log_config = config.logging
    level = log_config.get('level', 'INFO')
    log_file = Path(log_config.get('file') or Path(config.paths.logs) / 'reelcast.log')
    max_bytes = int(log_config.get('max_size_mb', 50)) * 1024 * 1024

    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_level(level))
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(log_config.get('format', DEFAULT_FORMAT))

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=log_config.get('backup_count', 5),
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # The CLI shows its own rich output; console logging can be switched off
    if log_config.get('console', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    levels = {**THIRD_PARTY_LEVELS, **log_config.get('third_party', {})}
    for name, lib_level in levels.items():
        logging.getLogger(name).setLevel(_level(lib_level))

    return logger


class LoggerMixin:
    """Gives a class a 'reelcast.<ClassName>' logger"""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            self._logger = logging.getLogger(f'{LOGGER_NAME}.{self.__class__.__name__}')
        return self._logger
