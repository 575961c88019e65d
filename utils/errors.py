"""
Класифіковані помилки програми обліку батарей.
"""

from typing import Optional


class SkyFuelError(Exception):
    """Базова помилка програми."""

    kind = 'Error'


class ValidationError(SkyFuelError):
    """Некоректні вхідні дані (перевіряються до звернення до сховища)."""

    kind = 'ValidationError'


class NotFoundError(SkyFuelError):
    """Запис не знайдено."""

    kind = 'NotFoundError'


class StorageError(SkyFuelError):
    """Помилка схеми, з'єднання або запису в базу даних."""

    kind = 'StorageError'


class ConstraintViolationError(StorageError):
    """Порушення обмеження таблиці (дублікат id)."""

    kind = 'ConstraintViolation'


class CodecError(SkyFuelError):
    """Помилка кодування або декодування QR коду."""

    kind = 'CodecError'

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class MalformedPayloadError(CodecError):
    kind = 'MalformedPayload'


class MissingFieldError(CodecError):
    kind = 'MissingField'


class InvalidIdentityError(CodecError):
    kind = 'InvalidIdentity'


class EncodingFailureError(CodecError):
    kind = 'EncodingFailure'


class ImageIoFailureError(CodecError):
    kind = 'ImageIoFailure'
