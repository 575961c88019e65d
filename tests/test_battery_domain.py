from datetime import datetime, timedelta, timezone

import pytest

from controllers.battery_domain import is_full, is_low, transition
from database.models import BatteryRecord, ChargeState

REGISTERED = datetime(2026, 10, 17, 9, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def record():
    return BatteryRecord.create(4, 5000, ChargeState.STORAGE, REGISTERED)


@pytest.mark.parametrize('start', list(ChargeState))
@pytest.mark.parametrize('target', list(ChargeState))
def test_every_transition_is_allowed(start, target):
    record = BatteryRecord.create(4, 5000, start, REGISTERED)
    later = REGISTERED + timedelta(minutes=5)

    transition(record, target, clock=lambda: later)

    assert record.etat_charge is target
    assert record.date_derniere_mis_a_jour == later


def test_transition_leaves_identity_untouched(record):
    before = (record.id, record.nb_cells, record.capacity, record.date_enregistrement, record.data)

    transition(record, ChargeState.FULL, clock=lambda: REGISTERED + timedelta(hours=1))

    assert (record.id, record.nb_cells, record.capacity, record.date_enregistrement, record.data) == before


def test_update_date_never_goes_backwards(record):
    stamps = [
        REGISTERED + timedelta(minutes=10),
        REGISTERED + timedelta(minutes=5),
        REGISTERED - timedelta(days=1),
        REGISTERED + timedelta(minutes=20),
    ]
    seen = []
    for stamp in stamps:
        transition(record, ChargeState.LOW, clock=lambda stamp=stamp: stamp)
        seen.append(record.date_derniere_mis_a_jour)

    assert seen == sorted(seen)
    assert seen[-1] == REGISTERED + timedelta(minutes=20)


def test_transition_uses_wall_clock_by_default(record):
    transition(record, ChargeState.FULL)
    assert record.date_derniere_mis_a_jour >= REGISTERED


@pytest.mark.parametrize('state', list(ChargeState))
def test_predicates_match_state(state):
    record = BatteryRecord.create(4, 5000, state, REGISTERED)
    assert is_full(record) == (state == ChargeState.FULL)
    assert is_low(record) == (state == ChargeState.LOW)
