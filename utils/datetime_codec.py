"""
Перетворення дат у текстовий формат ISO-8601 зі зміщенням і назад.
"""

import re
from datetime import datetime

# datetime.fromisoformat приймає не більше 6 цифр дробової частини секунд
_FRACTION_RE = re.compile(r'(\.\d{6})\d+')


def now() -> datetime:
    """Поточний час з локальним зміщенням."""
    return datetime.now().astimezone()


def format_datetime(value: datetime) -> str:
    """
    Перетворити дату в рядок ISO-8601 зі зміщенням.

    Args:
        value: Дата з часовою зоною

    Returns:
        Рядок на кшталт '2026-10-17T12:30:00.123456+02:00'
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Дата без часового зміщення: {value!r}")
    return value.isoformat()


def parse_datetime(text: str) -> datetime:
    """
    Розібрати рядок ISO-8601 зі зміщенням.

    Приймає також 'Z' замість '+00:00', час без секунд та дробову частину
    довшу за мікросекунди (вона обрізається).

    Args:
        text: Рядок дати

    Returns:
        Дата з часовою зоною

    Raises:
        ValueError: Рядок не є датою зі зміщенням
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"Порожній рядок дати: {text!r}")

    normalized = text.strip()
    if normalized.endswith(('Z', 'z')):
        normalized = normalized[:-1] + '+00:00'
    normalized = _FRACTION_RE.sub(r'\1', normalized)

    value = datetime.fromisoformat(normalized)
    if value.tzinfo is None:
        raise ValueError(f"Дата без часового зміщення: {text!r}")
    return value
