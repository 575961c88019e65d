import csv
import io
import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from controllers.battery_service import BatteryService
from database import export
from database.db import BatteryStore
from database.models import BatteryRecord, ChargeState
from utils.errors import ConstraintViolationError, ValidationError

REGISTERED = datetime(2026, 10, 17, 9, 30, 0, 250000, tzinfo=timezone(timedelta(hours=2)))


@pytest.fixture
def other_service(tmp_path, codec, clock):
    store = BatteryStore(tmp_path / "other" / "skyfuel.db")
    store.open()
    yield BatteryService(store, codec, clock=clock)
    store.close()


def test_export_json_document_shape(service, clock):
    record, _ = service.create(4, 5000, ChargeState.FULL)

    document = json.loads(service.export_records('json'))

    assert document['exportDate'] == clock.current.isoformat()
    assert document['appVersion'] == export.APP_VERSION
    assert document['batteries'] == [record.to_row()]


def test_export_csv_has_header_and_quotes_payload(service):
    record, _ = service.create(4, 5000, ChargeState.LOW)

    text = service.export_records('csv')

    lines = text.splitlines()
    assert lines[0] == ','.join(export.COLUMNS)
    assert '"{""id"":' in lines[1]
    rows = list(csv.DictReader(io.StringIO(text)))
    assert rows[0]['data'] == record.data


def test_export_rejects_unknown_format(service):
    with pytest.raises(ValidationError):
        service.export_records('xml')


@pytest.mark.parametrize('fmt', export.EXPORT_FORMATS)
def test_import_restores_records_in_another_store(service, other_service, clock, fmt):
    created = [service.create(n, 1000 * n, state)[0]
               for n, state in [(1, ChargeState.LOW), (4, ChargeState.FULL)]]
    clock.advance(hours=1)
    service.update_state(created[0].id, ChargeState.STORAGE)
    originals = service.list_all()

    imported = other_service.import_records(service.export_records(fmt))

    assert imported == originals
    assert other_service.list_all() == originals


def test_imported_payload_still_resolves_scan(service, other_service):
    record, artifact = service.create(6, 1300, ChargeState.STORAGE)

    other_service.import_records(service.export_records())

    assert other_service.resolve_scan(artifact.payload).id == record.id


def test_import_keeps_data_verbatim(other_service):
    record = BatteryRecord.create(4, 5000, ChargeState.STORAGE, REGISTERED)
    record.data = '{"id":"%s","note":"друкований раніше"}' % record.id

    other_service.import_records(export.export_json([record], REGISTERED))

    assert other_service.get(record.id).data == record.data


def test_import_duplicate_of_existing_is_constraint_violation(service):
    record, _ = service.create(4, 5000, ChargeState.STORAGE)
    fresh = BatteryRecord.create(2, 900, ChargeState.LOW, REGISTERED)
    text = export.export_json([fresh, record], REGISTERED)

    with pytest.raises(ConstraintViolationError):
        service.import_records(text)

    assert [r.id for r in service.list_all()] == [record.id]


def test_import_duplicate_inside_file_is_constraint_violation(other_service):
    record = BatteryRecord.create(4, 5000, ChargeState.STORAGE, REGISTERED)

    with pytest.raises(ConstraintViolationError):
        other_service.import_records(export.export_csv([record, record]))

    assert other_service.list_all() == []


def valid_entry(**overrides):
    entry = BatteryRecord.create(4, 5000, ChargeState.STORAGE, REGISTERED).to_row()
    entry.update(overrides)
    return entry


@pytest.mark.parametrize('text', [
    'not json at all {',
    '{"batteries": ',
    '{"batteries": {}}',
    '{"batteries": ' + '[' * 100000,
    json.dumps({'batteries': [42]}),
    json.dumps({'batteries': [valid_entry(id=str(uuid.uuid4()).upper())]}),
    json.dumps({'batteries': [valid_entry(id='battery-1')]}),
    json.dumps({'batteries': [valid_entry(nbCells=0)]}),
    json.dumps({'batteries': [valid_entry(capacity=1.5)]}),
    json.dumps({'batteries': [valid_entry(etatCharge=7)]}),
    json.dumps({'batteries': [valid_entry(dateEnregistrement='yesterday')]}),
    json.dumps({'batteries': [valid_entry(data={'id': 'x'})]}),
    json.dumps({'batteries': [{k: v for k, v in valid_entry().items() if k != 'data'}]}),
    'id,nbCells\n%s,4\n' % uuid.uuid4(),
    '',
])
def test_import_rejects_malformed_input_without_writing(service, text):
    with pytest.raises(ValidationError):
        service.import_records(text)

    assert service.list_all() == []


def test_import_stops_at_first_bad_entry(service):
    good = valid_entry()
    text = json.dumps({'batteries': [good, valid_entry(nbCells=-1)]})

    with pytest.raises(ValidationError) as excinfo:
        service.import_records(text)

    assert '#2' in str(excinfo.value)
    assert service.list_all() == []


def test_detect_format():
    assert export.detect_format('  {"batteries": []}') == 'json'
    assert export.detect_format('id,nbCells\n') == 'csv'


def test_export_file_name():
    moment = datetime(2026, 10, 17, 9, 5, 3)

    assert export.export_file_name('csv', moment) == 'skyfuel_backup_20261017_090503.csv'
    with pytest.raises(ValidationError):
        export.export_file_name('txt', moment)
