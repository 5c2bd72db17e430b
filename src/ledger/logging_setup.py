"""
Logging setup

Модули протокола логируют через logging.getLogger(__name__); эта функция
настраивает root logger для процесса-хоста (тесты, скрипты симуляции).
"""

import logging
from typing import Final

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Настройка root logger.

    Args:
        level: Имя уровня (DEBUG/INFO/WARNING/...). Неизвестное имя → INFO.
    """
    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=LOG_FORMAT, force=True)
    logging.getLogger().setLevel(resolved)
