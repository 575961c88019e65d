"""
Спільні фікстури для тестів.
"""

from datetime import datetime, timedelta, timezone

import pytest

from codec.identity_codec import IdentityCodec
from controllers.battery_service import BatteryService
from database.db import BatteryStore
from utils.logger import Logger


@pytest.fixture(autouse=True, scope='session')
def quiet_logger():
    """Логи тестів без файлу та консолі (caplog працює через propagate)."""
    Logger().setup(log_file=None, log_level='DEBUG', enable_console=False)


class FakeClock:
    """Керований годинник для тестів."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 17, 9, 30, 0, 123456, tzinfo=timezone(timedelta(hours=2))))


@pytest.fixture
def store(tmp_path):
    battery_store = BatteryStore(tmp_path / "data" / "skyfuel.db")
    battery_store.open()
    yield battery_store
    battery_store.close()


@pytest.fixture
def codec(tmp_path):
    return IdentityCodec(pictures_dir=tmp_path / "pictures")


@pytest.fixture
def service(store, codec, clock):
    return BatteryService(store, codec, clock=clock)
