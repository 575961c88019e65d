import json
import re

import pytest

from main import SkyFuelApp, main
from utils.logger import Logger


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "database:\n"
        f"  db_file: {tmp_path / 'data' / 'skyfuel.db'}\n"
        "codec:\n"
        f"  pictures_dir: {tmp_path / 'pictures'}\n"
        "logging:\n"
        f"  log_file: {tmp_path / 'logs' / 'skyfuel.log'}\n"
        "  level: DEBUG\n"
        "api:\n"
        "  enabled: false\n",
        encoding='utf-8',
    )
    yield str(path)
    Logger().setup(log_file=None, log_level='DEBUG', enable_console=False)


UUID_RE = re.compile(r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}')


def run(capsys, *argv):
    code = main(list(argv))
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def test_app_wires_components(config_path, tmp_path):
    app = SkyFuelApp(config_path, enable_console=False)
    try:
        assert app.api_server is None
        assert app.store.is_open
        assert app.codec.pictures_dir == tmp_path / 'pictures'
        assert app.service.store is app.store
        assert (tmp_path / 'logs' / 'skyfuel.log').exists()
    finally:
        app.shutdown()
    assert not app.store.is_open


def test_cli_lifecycle(config_path, capsys, tmp_path):
    code, out, _ = run(capsys, '--config', config_path, 'add', '--cells', '4', '--capacity', '5000')
    assert code == 0
    battery_id = UUID_RE.search(out).group(0)
    assert (tmp_path / 'pictures' / f'{battery_id}.png').exists()

    code, out, _ = run(capsys, '--config', config_path, 'show')
    assert code == 0
    payload = json.loads(out.strip().splitlines()[-1])
    assert payload['id'] == battery_id

    code, out, _ = run(capsys, '--config', config_path, 'scan', json.dumps(payload))
    assert code == 0 and battery_id in out

    code, out, _ = run(capsys, '--config', config_path, 'set-state', battery_id, 'full')
    assert code == 0 and 'Full' in out

    code, out, _ = run(capsys, '--config', config_path, 'list', '--state', 'full')
    assert battery_id in out

    code, out, _ = run(capsys, '--config', config_path, 'delete', battery_id)
    assert code == 0

    code, out, _ = run(capsys, '--config', config_path, 'list')
    assert out == ''


def test_cli_reports_classified_errors(config_path, capsys):
    code, _, err = run(capsys, '--config', config_path, 'add', '--cells', '0', '--capacity', '5000')
    assert code == 1 and 'ValidationError' in err

    code, _, err = run(capsys, '--config', config_path, 'scan', 'not json')
    assert code == 1 and 'MalformedPayload' in err

    code, out, _ = run(capsys, '--config', config_path, 'show')
    assert code == 1


def test_cli_missing_config(tmp_path, capsys):
    code, _, err = run(capsys, '--config', str(tmp_path / 'absent.yaml'), 'list')
    assert code == 1
    assert 'config.example.yaml' in err


def test_cli_export_then_import(config_path, capsys, tmp_path):
    run(capsys, '--config', config_path, 'add', '--cells', '4', '--capacity', '5000', '--state', 'full')
    code, out, _ = run(capsys, '--config', config_path, 'export', '--format', 'csv')
    assert code == 0
    battery_id = UUID_RE.search(out).group(0)

    backups = tmp_path / 'backups'
    backups.mkdir()
    code, out, _ = run(capsys, '--config', config_path, 'export', '--output', str(backups))
    assert code == 0
    [backup] = backups.iterdir()
    assert re.fullmatch(r'skyfuel_backup_\d{8}_\d{6}\.json', backup.name)

    code, _, err = run(capsys, '--config', config_path, 'import', str(backup))
    assert code == 1 and 'ConstraintViolation' in err

    run(capsys, '--config', config_path, 'delete', battery_id)
    code, out, _ = run(capsys, '--config', config_path, 'import', str(backup))
    assert code == 0 and '1' in out

    code, out, _ = run(capsys, '--config', config_path, 'list', '--state', 'full')
    assert battery_id in out


def test_cli_import_missing_file(config_path, capsys, tmp_path):
    code, _, err = run(capsys, '--config', config_path, 'import', str(tmp_path / 'absent.json'))
    assert code == 1 and 'absent.json' in err
