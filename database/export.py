"""
Експорт та імпорт батарей у форматах JSON і CSV.

Формат JSON:
{
  "exportDate": "2026-10-17T09:30:00+02:00",
  "appVersion": "0.1.0",
  "batteries": [{"id": "...", "nbCells": 4, ..., "data": "..."}]
}

CSV має рядок заголовка з тими самими назвами колонок, що й таблиця battery.
"""

import csv
import io
import json
from datetime import datetime
from typing import Any, Iterable, List, Mapping

from database.models import BatteryRecord, is_canonical_id
from utils.datetime_codec import format_datetime
from utils.errors import ValidationError

APP_VERSION = "0.1.0"
EXPORT_FORMATS = ('json', 'csv')
COLUMNS = (
    'id', 'nbCells', 'capacity', 'etatCharge',
    'dateEnregistrement', 'dateDerniereMisAJour', 'data',
)


def check_format(fmt: str) -> str:
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Невідомий формат експорту: {fmt!r} (json або csv)")
    return fmt


def detect_format(text: str) -> str:
    """Визначити формат за вмістом: JSON починається з '{'."""
    return 'json' if text.lstrip().startswith('{') else 'csv'


def export_file_name(fmt: str, moment: datetime) -> str:
    return f"skyfuel_backup_{moment:%Y%m%d_%H%M%S}.{check_format(fmt)}"


def export_json(records: Iterable[BatteryRecord], exported_at: datetime) -> str:
    document = {
        'exportDate': format_datetime(exported_at),
        'appVersion': APP_VERSION,
        'batteries': [record.to_row() for record in records],
    }
    return json.dumps(document, ensure_ascii=False, indent=2)


def export_csv(records: Iterable[BatteryRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS, lineterminator='\n')
    writer.writeheader()
    for record in records:
        writer.writerow(record.to_row())
    return buffer.getvalue()


def _entry_to_record(entry: Any, position: int) -> BatteryRecord:
    """
    Перевірити один запис імпорту.

    Args:
        entry: Словник з полями таблиці battery
        position: Номер запису у файлі (з 1) для повідомлень

    Raises:
        ValidationError: Запис неповний або некоректний
    """
    if not isinstance(entry, Mapping):
        raise ValidationError(f"Запис #{position}: очікувався об'єкт")

    missing = [column for column in COLUMNS if entry.get(column) is None]
    if missing:
        raise ValidationError(f"Запис #{position}: відсутні поля {', '.join(missing)}")

    if not is_canonical_id(entry['id']):
        raise ValidationError(f"Запис #{position}: некоректний id {entry['id']!r}")
    for column in ('nbCells', 'capacity', 'etatCharge'):
        if isinstance(entry[column], (bool, float)):
            raise ValidationError(f"Запис #{position}: поле {column} має бути цілим числом")
    if not isinstance(entry['data'], str):
        raise ValidationError(f"Запис #{position}: поле data має бути рядком")

    try:
        record = BatteryRecord.from_row(entry)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Запис #{position}: {e}") from e

    if record.nb_cells <= 0 or record.capacity <= 0:
        raise ValidationError(f"Запис #{position}: nbCells і capacity мають бути додатними")
    return record


def parse_json(text: str) -> List[BatteryRecord]:
    """
    Прочитати батареї з JSON експорту.

    Raises:
        ValidationError: Документ або один із записів некоректний
    """
    try:
        document = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise ValidationError(f"Некоректний JSON: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get('batteries'), list):
        raise ValidationError("JSON експорт має містити список batteries")

    return [_entry_to_record(entry, i) for i, entry in enumerate(document['batteries'], start=1)]


def parse_csv(text: str) -> List[BatteryRecord]:
    """
    Прочитати батареї з CSV експорту.

    Raises:
        ValidationError: Заголовок або один із рядків некоректний
    """
    reader = csv.DictReader(io.StringIO(text))
    try:
        header = reader.fieldnames
        if header is None or tuple(header) != COLUMNS:
            raise ValidationError(f"Очікувався заголовок CSV: {','.join(COLUMNS)}")
        return [_entry_to_record(row, i) for i, row in enumerate(reader, start=1)]
    except csv.Error as e:
        raise ValidationError(f"Некоректний CSV: {e}") from e


def parse(text: str, fmt: str) -> List[BatteryRecord]:
    if check_format(fmt) == 'json':
        return parse_json(text)
    return parse_csv(text)
