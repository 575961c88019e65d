"""
Модуль для реєстрації батарей, зміни їх стану та розпізнавання QR кодів.
"""

import uuid
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from codec.identity_codec import IdentityCodec, ImageArtifact
from controllers.battery_domain import transition
from database import export
from database.db import BatteryStore
from database.models import BatteryRecord, ChargeState
from utils.datetime_codec import now as current_time
from utils.errors import CodecError, NotFoundError, StorageError, ValidationError
from utils.logger import get_logger

BatteryId = Union[uuid.UUID, str]


class BatteryService:
    """Клас, що поєднує сховище батарей і кодек QR кодів."""

    def __init__(
        self,
        store: BatteryStore,
        codec: IdentityCodec,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Ініціалізація сервісу.

        Args:
            store: Відкрите сховище батарей
            codec: Кодек QR кодів
            clock: Джерело поточного часу (за замовчуванням - локальний час)
        """
        self.store = store
        self.codec = codec
        self.clock = clock or current_time
        self.logger = get_logger()

    @staticmethod
    def _validate_positive(name: str, value) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} має бути цілим числом, отримано {value!r}")
        if value <= 0:
            raise ValidationError(f"{name} має бути додатним, отримано {value}")
        return value

    @staticmethod
    def _validate_state(value) -> ChargeState:
        try:
            return ChargeState.parse(value)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    @staticmethod
    def _validate_id(battery_id: BatteryId) -> uuid.UUID:
        if isinstance(battery_id, uuid.UUID):
            return battery_id
        try:
            return uuid.UUID(str(battery_id))
        except ValueError as e:
            raise ValidationError(f"Некоректний id батареї: {battery_id!r}") from e

    def create(
        self,
        nb_cells: int,
        capacity: int,
        etat_charge: Union[ChargeState, int, str]
    ) -> Tuple[BatteryRecord, ImageArtifact]:
        """
        Зареєструвати нову батарею та згенерувати її QR код.

        Args:
            nb_cells: Кількість елементів (> 0)
            capacity: Ємність (> 0)
            etat_charge: Початковий стан заряду

        Returns:
            (запис, QR код)

        Raises:
            ValidationError: Некоректні дані, нічого не збережено
            StorageError: Помилка запису
            CodecError: Помилка генерації QR коду, запис видалено
        """
        nb_cells = self._validate_positive('nbCells', nb_cells)
        capacity = self._validate_positive('capacity', capacity)
        state = self._validate_state(etat_charge)

        record = BatteryRecord.create(nb_cells, capacity, state, self.clock())
        self.store.create(record)

        try:
            artifact = self.codec.encode(record)
        except CodecError:
            self.logger.error(f"QR код батареї {record.id} не створено, запис видаляється")
            try:
                self.store.delete(record)
            except StorageError as cleanup_error:
                self.logger.error(f"Не вдалося видалити батарею {record.id}: {cleanup_error}")
            raise

        self.logger.info(
            f"Зареєстровано батарею {record.id}: {nb_cells} ел., {capacity}, стан {state.label}"
        )
        return record, artifact

    def get(self, battery_id: BatteryId) -> BatteryRecord:
        """
        Отримати батарею за id.

        Raises:
            NotFoundError: Батарею не знайдено
        """
        identity = self._validate_id(battery_id)
        record = self.store.fetch_by_id(identity)
        if record is None:
            raise NotFoundError(f"Батарею {identity} не знайдено")
        return record

    def latest(self) -> Optional[BatteryRecord]:
        """Остання додана батарея."""
        return self.store.fetch_latest()

    def list_all(self) -> List[BatteryRecord]:
        return self.store.fetch_all()

    def list_by_state(self, state: Union[ChargeState, int, str]) -> List[BatteryRecord]:
        """Батареї в заданому стані заряду."""
        wanted = self._validate_state(state)
        return [record for record in self.store.fetch_all() if record.etat_charge == wanted]

    def count_by_state(self) -> Dict[str, int]:
        """Кількість батарей у кожному стані."""
        counts = Counter(record.etat_charge for record in self.store.fetch_all())
        return {state.name.lower(): counts.get(state, 0) for state in ChargeState}

    def resolve_scan(self, raw_text: str) -> BatteryRecord:
        """
        Знайти батарею за текстом, прочитаним з QR коду.

        Raises:
            CodecError: Текст не є payload батареї
            NotFoundError: Батареї з таким id немає
        """
        identity = self.codec.decode(raw_text)
        record = self.store.fetch_by_id(identity)
        if record is None:
            raise NotFoundError(f"Відсканована батарея {identity} не знайдена")
        return record

    def update_state(
        self,
        battery_id: BatteryId,
        new_state: Union[ChargeState, int, str]
    ) -> BatteryRecord:
        """
        Змінити стан заряду батареї.

        Raises:
            ValidationError: Некоректний id або стан
            NotFoundError: Батарею не знайдено
        """
        state = self._validate_state(new_state)
        record = self.get(battery_id)
        previous = record.etat_charge

        transition(record, state, self.clock)
        if self.store.update(record) == 0:
            raise NotFoundError(f"Батарею {record.id} видалено під час оновлення")

        self.logger.info(f"Батарея {record.id}: {previous.label} -> {state.label}")
        return record

    def render_codec(self, battery_id: BatteryId) -> ImageArtifact:
        """Перегенерувати QR код існуючої батареї."""
        return self.codec.encode(self.get(battery_id))

    def delete(self, battery_id: BatteryId) -> BatteryRecord:
        """
        Видалити батарею та її QR код.

        Returns:
            Видалений запис

        Raises:
            NotFoundError: Батарею не знайдено
        """
        record = self.get(battery_id)
        self.store.delete(record)
        self.codec.remove_artifact(record.id)
        return record

    def export_records(self, fmt: str = 'json') -> str:
        """
        Експортувати всі батареї.

        Args:
            fmt: 'json' або 'csv'

        Returns:
            Текст експорту

        Raises:
            ValidationError: Невідомий формат
        """
        export.check_format(fmt)
        records = self.store.fetch_all()
        if fmt == 'json':
            text = export.export_json(records, self.clock())
        else:
            text = export.export_csv(records)

        self.logger.info(f"Експортовано {len(records)} батарей у форматі {fmt}")
        return text

    def import_records(self, text: str, fmt: Optional[str] = None) -> List[BatteryRecord]:
        """
        Імпортувати батареї з експорту.

        id, дати та поле data зберігаються без змін, тому QR коди, надруковані
        до експорту, залишаються дійсними. Імпорт виконується повністю або не
        виконується взагалі.

        Args:
            text: Текст експорту
            fmt: 'json', 'csv' або None для визначення за вмістом

        Returns:
            Імпортовані записи

        Raises:
            ValidationError: Некоректний формат або запис
            ConstraintViolationError: Батарея з таким id вже існує
        """
        if not isinstance(text, str):
            raise ValidationError("Текст імпорту має бути рядком")

        records = export.parse(text, fmt or export.detect_format(text))
        self.store.create_many(records)

        self.logger.info(f"Імпортовано {len(records)} батарей")
        return records
