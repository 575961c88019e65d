"""
Модуль для кодування ідентичності батареї в QR код та декодування сканів.
"""

import json
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple, Union

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image, ImageDraw, ImageFont

from database.models import BatteryRecord
from utils.errors import (
    CodecError,
    EncodingFailureError,
    ImageIoFailureError,
    InvalidIdentityError,
    MalformedPayloadError,
    MissingFieldError,
)
from utils.logger import get_logger

ERROR_CORRECTION_LEVELS = {
    'L': qrcode.constants.ERROR_CORRECT_L,
    'M': qrcode.constants.ERROR_CORRECT_M,
    'Q': qrcode.constants.ERROR_CORRECT_Q,
    'H': qrcode.constants.ERROR_CORRECT_H,
}

QUIET_ZONE = 4
WATERMARK_POSITION = (10, 10)
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


@dataclass
class ImageArtifact:
    """Згенерований QR код батареї."""
    record_id: uuid.UUID
    path: Path
    payload: str
    image: Image.Image

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


class DecodeResult(NamedTuple):
    """Результат декодування: або identity, або error."""
    identity: Optional[uuid.UUID]
    error: Optional[CodecError]

    @property
    def ok(self) -> bool:
        return self.error is None


class IdentityCodec:
    """Клас для перетворення канонічного payload батареї в QR зображення і назад."""

    def __init__(
        self,
        pictures_dir: Union[str, Path] = "pictures/SkyFuel",
        size: int = 500,
        error_correction: str = 'L',
        watermark: bool = True
    ):
        """
        Ініціалізація кодека.

        Args:
            pictures_dir: Директорія для PNG файлів
            size: Розмір зображення в пікселях (квадрат)
            error_correction: Рівень корекції помилок QR (L, M, Q, H)
            watermark: Чи накладати id батареї на зображення
        """
        level = str(error_correction).upper()
        if level not in ERROR_CORRECTION_LEVELS:
            raise ValueError(f"Невідомий рівень корекції помилок: {error_correction}")
        if size <= 0:
            raise ValueError(f"Некоректний розмір зображення: {size}")

        self.pictures_dir = Path(pictures_dir)
        self.size = size
        self.error_correction = ERROR_CORRECTION_LEVELS[level]
        self.watermark = watermark
        self.logger = get_logger()

    def artifact_path(self, record_id: uuid.UUID) -> Path:
        """Шлях до PNG файлу батареї."""
        return self.pictures_dir / f"{record_id}.png"

    def build_matrix(self, payload: str) -> List[List[bool]]:
        """
        Побудувати матрицю QR коду разом з тихою зоною.

        Raises:
            EncodingFailureError: payload не вміщується в QR код
        """
        qr = qrcode.QRCode(
            version=None,
            error_correction=self.error_correction,
            box_size=1,
            border=QUIET_ZONE,
        )
        try:
            qr.add_data(payload)
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as e:
            raise EncodingFailureError(
                f"Payload довжиною {len(payload)} не вміщується в QR код: {e}"
            ) from e
        return qr.get_matrix()

    def module_geometry(self, module_count: int) -> Tuple[int, int]:
        """
        Розмір модуля та відступ для матриці заданого розміру.

        Returns:
            (scale, offset) в пікселях
        """
        scale = self.size // module_count
        if scale < 1:
            raise EncodingFailureError(
                f"Матриця {module_count}x{module_count} не вміщується в {self.size}px"
            )
        return scale, (self.size - module_count * scale) // 2

    def render(self, payload: str, record_id: uuid.UUID) -> Image.Image:
        """
        Намалювати QR код: чорні модулі на білому фоні, id як водяний знак.
        """
        matrix = self.build_matrix(payload)
        scale, offset = self.module_geometry(len(matrix))

        image = Image.new('RGB', (self.size, self.size), WHITE)
        draw = ImageDraw.Draw(image)
        for y, row in enumerate(matrix):
            for x, dark in enumerate(row):
                if dark:
                    left = offset + x * scale
                    top = offset + y * scale
                    draw.rectangle(
                        [left, top, left + scale - 1, top + scale - 1],
                        fill=BLACK,
                    )

        if self.watermark:
            draw.text(WATERMARK_POSITION, str(record_id), fill=BLACK, font=ImageFont.load_default())
        return image

    def _write_png(self, image: Image.Image, path: Path) -> None:
        """
        Записати PNG через тимчасовий файл.

        Файл з'являється під кінцевим іменем лише після успішного запису.
        """
        tmp_path: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{path.stem}-", suffix='.png', dir=path.parent)
            with os.fdopen(fd, 'wb') as stream:
                image.save(stream, format='PNG')
                stream.flush()
                os.fsync(stream.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except (OSError, ValueError) as e:
            self.logger.error(f"Помилка запису QR коду {path}: {e}")
            raise ImageIoFailureError(f"Не вдалося записати {path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def encode(self, record: BatteryRecord) -> ImageArtifact:
        """
        Згенерувати QR код батареї та зберегти його як <id>.png.

        Кодується збережений payload (знімок на момент створення).

        Args:
            record: Запис батареї

        Returns:
            ImageArtifact

        Raises:
            EncodingFailureError: payload завеликий для QR коду
            ImageIoFailureError: Не вдалося записати файл
        """
        try:
            image = self.render(record.data, record.id)
        except EncodingFailureError as e:
            self.logger.error(f"Помилка кодування батареї {record.id}: {e}")
            raise

        path = self.artifact_path(record.id)
        self._write_png(image, path)
        self.logger.info(f"QR код батареї {record.id} збережено: {path}")

        return ImageArtifact(record_id=record.id, path=path, payload=record.data, image=image)

    def remove_artifact(self, record_id: uuid.UUID) -> bool:
        """
        Видалити PNG файл батареї.

        Returns:
            True якщо файл існував і був видалений
        """
        path = self.artifact_path(record_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            self.logger.error(f"Помилка видалення QR коду {path}: {e}")
            raise ImageIoFailureError(f"Не вдалося видалити {path}: {e}") from e
        return True

    def decode(self, raw_text: str) -> uuid.UUID:
        """
        Отримати id батареї з відсканованого тексту.

        Args:
            raw_text: Текст, прочитаний сканером

        Returns:
            UUID батареї

        Raises:
            MalformedPayloadError: Текст не є JSON об'єктом
            MissingFieldError: Немає поля id
            InvalidIdentityError: id не є UUID
        """
        try:
            document = json.loads(raw_text)
        except (TypeError, ValueError, RecursionError) as e:
            raise MalformedPayloadError(f"Некоректний payload: {e}", raw_text) from e

        if not isinstance(document, dict):
            raise MalformedPayloadError(
                f"Payload має бути JSON об'єктом, отримано {type(document).__name__}", raw_text
            )
        if 'id' not in document:
            raise MissingFieldError("У payload відсутнє поле id", raw_text)

        try:
            return uuid.UUID(document['id'])
        except (TypeError, ValueError, AttributeError) as e:
            raise InvalidIdentityError(f"Некоректний id: {document['id']!r}", raw_text) from e

    def try_decode(self, raw_text: str) -> DecodeResult:
        """Як decode, але повертає помилку як значення."""
        try:
            return DecodeResult(self.decode(raw_text), None)
        except CodecError as e:
            self.logger.warning(f"Скан не розпізнано ({e.kind}): {e}")
            return DecodeResult(None, e)
