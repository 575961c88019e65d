"""
Модуль для роботи з базою даних SQLite.
"""

import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from database.models import BatteryRecord, is_canonical_id
from utils.errors import ConstraintViolationError, StorageError
from utils.logger import get_logger


class BatteryStore:
    """
    Сховище батарей у таблиці battery.

    З'єднання відкривається на кожну операцію і закривається перед поверненням.
    """

    _INSERT_SQL = """
        INSERT INTO battery (id, nbCells, capacity, etatCharge,
                             dateEnregistrement, dateDerniereMisAJour, data)
        VALUES (:id, :nbCells, :capacity, :etatCharge,
                :dateEnregistrement, :dateDerniereMisAJour, :data)
    """

    def __init__(self, db_file: Union[str, Path] = "data/skyfuel.db"):
        """
        Ініціалізація сховища.

        Args:
            db_file: Шлях до файлу бази даних
        """
        self.db_file = Path(db_file)
        self.logger = get_logger()
        self.is_open = False

    def __enter__(self) -> 'BatteryStore':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Отримати з'єднання з базою даних."""
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """
        З'єднання на одну операцію.

        Зміни фіксуються при успіху і відкочуються при помилці, з'єднання
        закривається в будь-якому разі.
        """
        if not self.is_open:
            raise StorageError(f"Сховище закрите: {self.db_file}")

        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            self.logger.error(f"Помилка з'єднання з базою даних: {e}")
            raise StorageError(f"Не вдалося відкрити {self.db_file}: {e}") from e

        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def open(self) -> None:
        """Відкрити сховище та створити таблицю, якщо її немає."""
        try:
            self.db_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Не вдалося створити директорію бази даних: {e}")
            raise StorageError(f"Не вдалося створити {self.db_file.parent}: {e}") from e

        self.is_open = True
        try:
            with self._connection() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS battery (
                        id TEXT PRIMARY KEY,
                        nbCells INTEGER NOT NULL,
                        capacity INTEGER NOT NULL,
                        etatCharge INTEGER NOT NULL,
                        dateEnregistrement TEXT NOT NULL,
                        dateDerniereMisAJour TEXT NOT NULL,
                        data TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as e:
            self.is_open = False
            self.logger.error(f"Помилка ініціалізації бази даних: {e}")
            raise StorageError(f"Не вдалося створити схему в {self.db_file}: {e}") from e
        except StorageError:
            self.is_open = False
            raise

        self.logger.info(f"База даних ініціалізована: {self.db_file}")

    def close(self) -> None:
        """Закрити сховище."""
        self.is_open = False

    def create(self, record: BatteryRecord) -> uuid.UUID:
        """
        Зберегти нову батарею.

        Args:
            record: Запис батареї

        Returns:
            id збереженого запису

        Raises:
            ConstraintViolationError: Запис з таким id вже існує
            StorageError: Помилка запису
        """
        try:
            with self._connection() as conn:
                conn.execute(self._INSERT_SQL, record.to_row())
        except sqlite3.IntegrityError as e:
            self.logger.error(f"Порушення обмеження при збереженні батареї {record.id}: {e}")
            raise ConstraintViolationError(f"Батарея {record.id} вже існує") from e
        except sqlite3.Error as e:
            self.logger.error(f"Помилка збереження батареї {record.id}: {e}")
            raise StorageError(f"Не вдалося зберегти батарею {record.id}: {e}") from e

        self.logger.info(f"Збережено батарею {record.id}")
        return record.id

    def create_many(self, records: List[BatteryRecord]) -> int:
        """
        Зберегти кілька батарей однією транзакцією.

        Якщо хоч один запис не вдалося зберегти, не зберігається жоден.

        Returns:
            Кількість збережених записів

        Raises:
            ConstraintViolationError: Запис з таким id вже існує або повторюється
            StorageError: Помилка запису
        """
        try:
            with self._connection() as conn:
                conn.executemany(self._INSERT_SQL, [record.to_row() for record in records])
        except sqlite3.IntegrityError as e:
            self.logger.error(f"Порушення обмеження при імпорті батарей: {e}")
            raise ConstraintViolationError(f"Імпорт містить батарею, що вже існує: {e}") from e
        except sqlite3.Error as e:
            self.logger.error(f"Помилка імпорту батарей: {e}")
            raise StorageError(f"Не вдалося зберегти батареї: {e}") from e

        self.logger.info(f"Збережено {len(records)} батарей")
        return len(records)

    def _select_rows(self, order: str) -> List[sqlite3.Row]:
        try:
            with self._connection() as conn:
                return conn.execute(f"SELECT * FROM battery ORDER BY rowid {order}").fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Помилка читання батарей: {e}")
            raise StorageError(f"Не вдалося прочитати таблицю battery: {e}") from e

    def _row_to_record(self, row: sqlite3.Row) -> Optional[BatteryRecord]:
        """
        Перетворити рядок у запис.

        Рядок з id не у канонічній формі (малі літери з дефісами) пропускається,
        бо update/delete шукають рядок саме за канонічним текстом id.

        Returns:
            None якщо id не є канонічним UUID

        Raises:
            StorageError: Інші поля рядка пошкоджені
        """
        if not is_canonical_id(row['id']):
            self.logger.debug(f"Пропущено рядок з некоректним id: {row['id']!r}")
            return None

        try:
            return BatteryRecord.from_row(row)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Пошкоджений рядок батареї {row['id']}: {e}")
            raise StorageError(f"Пошкоджений рядок батареї {row['id']}: {e}") from e

    def fetch_latest(self) -> Optional[BatteryRecord]:
        """
        Отримати останню додану батарею.

        Порядок визначається порядком вставки (rowid), а не датами.

        Returns:
            Запис або None, якщо таблиця порожня
        """
        for row in self._select_rows('DESC'):
            record = self._row_to_record(row)
            if record is not None:
                return record
        return None

    def fetch_all(self) -> List[BatteryRecord]:
        """
        Отримати всі батареї в порядку додавання.

        Рядки з некоректним id мовчки пропускаються.
        """
        records = []
        for row in self._select_rows('ASC'):
            record = self._row_to_record(row)
            if record is not None:
                records.append(record)
        return records

    def fetch_by_id(self, battery_id: uuid.UUID) -> Optional[BatteryRecord]:
        """Знайти батарею за id."""
        for record in self.fetch_all():
            if record.id == battery_id:
                return record
        return None

    def update(self, record: BatteryRecord) -> int:
        """
        Оновити батарею.

        id та dateEnregistrement не змінюються.

        Returns:
            Кількість оновлених рядків (0 якщо id не існує)
        """
        row = record.to_row()
        try:
            with self._connection() as conn:
                cursor = conn.execute("""
                    UPDATE battery
                    SET nbCells = :nbCells,
                        capacity = :capacity,
                        etatCharge = :etatCharge,
                        dateDerniereMisAJour = :dateDerniereMisAJour,
                        data = :data
                    WHERE id = :id
                """, row)
                updated = cursor.rowcount
        except sqlite3.Error as e:
            self.logger.error(f"Помилка оновлення батареї {record.id}: {e}")
            raise StorageError(f"Не вдалося оновити батарею {record.id}: {e}") from e

        if updated == 0:
            self.logger.warning(f"Оновлення батареї {record.id}: запис не знайдено")
        return updated

    def delete(self, record: BatteryRecord) -> int:
        """
        Видалити батарею.

        Returns:
            Кількість видалених рядків
        """
        try:
            with self._connection() as conn:
                cursor = conn.execute("DELETE FROM battery WHERE id = ?", (str(record.id),))
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            self.logger.error(f"Помилка видалення батареї {record.id}: {e}")
            raise StorageError(f"Не вдалося видалити батарею {record.id}: {e}") from e

        if deleted:
            self.logger.info(f"Видалено батарею {record.id}")
        return deleted
