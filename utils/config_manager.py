"""
Модуль для управління конфігурацією програми.
"""

import yaml
from typing import Dict, Any
from pathlib import Path

REQUIRED_SECTIONS = ('database', 'codec')


class ConfigManager:
    """Клас для завантаження та управління конфігурацією."""

    def __init__(self, config_path: str = "config.yaml"):
        """
        Ініціалізація ConfigManager.

        Args:
            config_path: Шлях до файлу конфігурації
        """
        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        self.load_config()

    def load_config(self) -> None:
        """Завантажити конфігурацію з файлу."""
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Файл конфігурації не знайдено: {self.config_path}\n"
                f"Скопіюйте config.example.yaml як config.yaml та налаштуйте його."
            )

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Помилка парсингу YAML: {e}") from e

        if not isinstance(loaded, dict):
            raise ValueError(f"Конфігурація має бути словником, отримано {type(loaded).__name__}")
        self.config = loaded

    def get(self, key: str, default: Any = None) -> Any:
        """
        Отримати значення з конфігурації за ключем.

        Args:
            key: Ключ у форматі 'section.subsection.key' або просто 'key'
            default: Значення за замовчуванням, якщо ключ не знайдено

        Returns:
            Значення з конфігурації або default
        """
        value = self.config

        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Отримати всю секцію конфігурації.

        Args:
            section: Назва секції

        Returns:
            Словник з налаштуваннями секції або порожній словник
        """
        return self.config.get(section) or {}

    def validate(self) -> bool:
        """
        Валідація конфігурації.

        Returns:
            True якщо конфігурація валідна
        """
        for section in REQUIRED_SECTIONS:
            if section not in self.config:
                raise ValueError(f"Відсутня обов'язкова секція: {section}")

        if not self.get('database.db_file'):
            raise ValueError("Не вказано файл бази даних (database.db_file)")

        if not self.get('codec.pictures_dir'):
            raise ValueError("Не вказано директорію для QR кодів (codec.pictures_dir)")

        size = self.get('codec.size', 500)
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise ValueError(f"Некоректний розмір QR коду: {size}")

        level = str(self.get('codec.error_correction', 'L')).upper()
        if level not in ('L', 'M', 'Q', 'H'):
            raise ValueError(f"Невідомий рівень корекції помилок: {level}")

        return True

    def reload(self) -> None:
        """Перезавантажити конфігурацію з файлу."""
        self.load_config()
