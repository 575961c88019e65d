"""
Машина станів заряду батареї.
"""

from datetime import datetime
from typing import Callable, Optional

from database.models import BatteryRecord, ChargeState
from utils.datetime_codec import now as current_time


def transition(
    record: BatteryRecord,
    new_state: ChargeState,
    clock: Optional[Callable[[], datetime]] = None
) -> BatteryRecord:
    """
    Перевести батарею в новий стан.

    Дозволені будь-які переходи. Дата оновлення ставиться в "зараз" і ніколи
    не зменшується, навіть якщо системний годинник перевели назад.

    Args:
        record: Запис батареї (змінюється на місці)
        new_state: Новий стан заряду
        clock: Джерело поточного часу (для тестів)

    Returns:
        Той самий запис
    """
    timestamp = (clock or current_time)()
    if timestamp < record.date_derniere_mis_a_jour:
        timestamp = record.date_derniere_mis_a_jour

    record.etat_charge = ChargeState(new_state)
    record.date_derniere_mis_a_jour = timestamp
    return record


def is_full(record: BatteryRecord) -> bool:
    return record.etat_charge == ChargeState.FULL


def is_low(record: BatteryRecord) -> bool:
    return record.etat_charge == ChargeState.LOW
