"""
Моделі даних для бази даних.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, Mapping, Union

from utils.datetime_codec import format_datetime, parse_datetime


class ChargeState(IntEnum):
    """Стан заряду батареї."""
    LOW = 0
    STORAGE = 1
    FULL = 2

    @property
    def label(self) -> str:
        """Назва стану для відображення."""
        return _STATE_LABELS[self]

    @classmethod
    def parse(cls, value: Union['ChargeState', int, str]) -> 'ChargeState':
        """
        Отримати стан з числа, числового рядка або назви.

        Args:
            value: 0/1/2, '0'/'1'/'2' або 'low'/'storage'/'full'

        Returns:
            ChargeState

        Raises:
            ValueError: Невідомий стан
        """
        if isinstance(value, bool):
            raise ValueError(f"Невідомий стан заряду: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            text = value.strip()
            if text.lstrip('-').isdigit():
                return cls(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                pass
        raise ValueError(f"Невідомий стан заряду: {value!r}")


_STATE_LABELS = {
    ChargeState.LOW: 'Low',
    ChargeState.STORAGE: 'Storage',
    ChargeState.FULL: 'Full',
}


def is_canonical_id(raw: Any) -> bool:
    """Чи є значення UUID у канонічному записі (малі літери з дефісами)."""
    try:
        return str(uuid.UUID(raw)) == raw
    except (TypeError, ValueError, AttributeError):
        return False


def canonical_payload(
    battery_id: uuid.UUID,
    nb_cells: int,
    capacity: int,
    date_enregistrement: datetime
) -> str:
    """Серіалізувати ідентифікаційний знімок батареї в компактний JSON."""
    return json.dumps(
        {
            'id': str(battery_id),
            'nbCells': nb_cells,
            'capacity': capacity,
            'dateEnregistrement': format_datetime(date_enregistrement),
        },
        ensure_ascii=False,
        separators=(',', ':'),
    )


@dataclass
class BatteryRecord:
    """
    Модель батареї.

    Поле ``data`` обчислюється один раз при створенні і не оновлюється при
    зміні стану: QR код кодує ідентичність, а не поточний стан.
    """
    id: uuid.UUID
    nb_cells: int
    capacity: int
    etat_charge: ChargeState
    date_enregistrement: datetime
    date_derniere_mis_a_jour: datetime
    data: str

    @classmethod
    def create(
        cls,
        nb_cells: int,
        capacity: int,
        etat_charge: ChargeState,
        date_enregistrement: datetime
    ) -> 'BatteryRecord':
        """
        Створити нову батарею з випадковим UUID.

        Args:
            nb_cells: Кількість елементів
            capacity: Ємність
            etat_charge: Початковий стан заряду
            date_enregistrement: Дата реєстрації

        Returns:
            Новий запис з однаковими датами реєстрації та оновлення
        """
        battery_id = uuid.uuid4()
        return cls(
            id=battery_id,
            nb_cells=nb_cells,
            capacity=capacity,
            etat_charge=ChargeState(etat_charge),
            date_enregistrement=date_enregistrement,
            date_derniere_mis_a_jour=date_enregistrement,
            data=canonical_payload(battery_id, nb_cells, capacity, date_enregistrement),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'BatteryRecord':
        """
        Відновити запис з рядка таблиці battery.

        Raises:
            ValueError: id не є UUID або дата некоректна
        """
        return cls(
            id=uuid.UUID(str(row['id'])),
            nb_cells=int(row['nbCells']),
            capacity=int(row['capacity']),
            etat_charge=ChargeState(int(row['etatCharge'])),
            date_enregistrement=parse_datetime(row['dateEnregistrement']),
            date_derniere_mis_a_jour=parse_datetime(row['dateDerniereMisAJour']),
            data=row['data'],
        )

    def to_row(self) -> Dict[str, Any]:
        """Конвертувати в параметри для таблиці battery."""
        return {
            'id': str(self.id),
            'nbCells': self.nb_cells,
            'capacity': self.capacity,
            'etatCharge': int(self.etat_charge),
            'dateEnregistrement': format_datetime(self.date_enregistrement),
            'dateDerniereMisAJour': format_datetime(self.date_derniere_mis_a_jour),
            'data': self.data,
        }

    def to_dict(self) -> dict:
        """Конвертувати в словник."""
        from controllers.battery_domain import is_full, is_low

        return {
            'id': str(self.id),
            'nbCells': self.nb_cells,
            'capacity': self.capacity,
            'etatCharge': int(self.etat_charge),
            'etatChargeLabel': self.etat_charge.label,
            'isFull': is_full(self),
            'isLow': is_low(self),
            'dateEnregistrement': self.date_enregistrement.isoformat(),
            'dateDerniereMisAJour': self.date_derniere_mis_a_jour.isoformat(),
            'data': self.data,
        }
