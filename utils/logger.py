"""
Модуль для логування подій програми.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def parse_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    """
    Перетворити рівень логування з конфігурації в число.

    Args:
        level: 10, 'DEBUG', 'info' тощо

    Returns:
        Числовий рівень logging
    """
    if level is None:
        return default
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else default


class Logger:
    """Клас для налаштування та використання логування."""

    _instance: Optional['Logger'] = None
    _initialized = False

    def __new__(cls):
        """Singleton pattern для Logger."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Ініціалізація Logger (виконується тільки один раз)."""
        if not Logger._initialized:
            self.logger: Optional[logging.Logger] = None
            Logger._initialized = True

    def setup(
        self,
        log_file: Optional[str] = "logs/skyfuel.log",
        log_level: Union[int, str] = logging.INFO,
        enable_console: bool = True
    ) -> None:
        """
        Налаштувати логування.

        Args:
            log_file: Шлях до файлу логів (None - без файлу)
            log_level: Рівень логування
            enable_console: Чи виводити логи в консоль
        """
        level = parse_level(log_level)
        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

        self.logger = logging.getLogger('skyfuel')
        self.logger.setLevel(level)

        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding='utf-8')
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        if enable_console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

    def get_logger(self) -> logging.Logger:
        """
        Отримати об'єкт logger.

        Returns:
            Logger об'єкт
        """
        if self.logger is None:
            # Якщо logger не налаштований, створити базовий
            self.setup()
        return self.logger


# Глобальна функція для зручності
def get_logger() -> logging.Logger:
    """Отримати глобальний logger."""
    return Logger().get_logger()
