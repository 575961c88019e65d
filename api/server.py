"""
REST API сервер для реєстрації батарей та розпізнавання QR кодів.
"""

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS
from typing import Optional
import threading

from controllers.battery_service import BatteryService
from database.export import export_file_name
from utils.config_manager import ConfigManager
from utils.errors import (
    CodecError,
    ConstraintViolationError,
    NotFoundError,
    SkyFuelError,
    StorageError,
    ValidationError,
)
from utils.logger import get_logger

ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (CodecError, 422),
    (ConstraintViolationError, 409),
    (StorageError, 500),
)


def _status_for(error: SkyFuelError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


class APIServer:
    """Клас для REST API сервера."""

    def __init__(self, service: BatteryService, config: ConfigManager):
        """
        Ініціалізація API сервера.

        Args:
            service: Сервіс батарей
            config: Конфігурація
        """
        self.service = service
        self.config = config
        self.logger = get_logger()

        # Налаштування Flask
        api_config = config.get_section('api')
        self.host = api_config.get('host', '0.0.0.0')
        self.port = api_config.get('port', 8080)
        self.debug = api_config.get('debug', False)

        self.app = Flask(__name__)
        CORS(self.app)

        self._register_error_handlers()
        self._register_routes()

        self.server_thread: Optional[threading.Thread] = None
        self.is_running = False

    def _register_error_handlers(self) -> None:
        @self.app.errorhandler(SkyFuelError)
        def handle_error(error: SkyFuelError):
            status = _status_for(error)
            if status >= 500:
                self.logger.error(f"API помилка {error.kind}: {error}")
            return jsonify({'error': error.kind, 'message': str(error)}), status

    @staticmethod
    def _json_body() -> dict:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("Очікується JSON об'єкт у тілі запиту")
        return body

    def _register_routes(self) -> None:
        """Зареєструвати всі маршрути API."""

        @self.app.route('/api/status')
        def api_status():
            """Загальний статус сервісу."""
            counts = self.service.count_by_state()
            return jsonify({
                'status': 'running',
                'batteries_count': sum(counts.values()),
                'by_state': counts,
            })

        @self.app.route('/api/batteries', methods=['GET'])
        def api_batteries():
            """Список батарей, за потреби відфільтрований за станом."""
            state = request.args.get('state')
            if state is None:
                records = self.service.list_all()
            else:
                records = self.service.list_by_state(state)
            return jsonify({'batteries': [record.to_dict() for record in records]})

        @self.app.route('/api/batteries', methods=['POST'])
        def api_create_battery():
            """Зареєструвати батарею."""
            body = self._json_body()
            missing = [key for key in ('nbCells', 'capacity', 'etatCharge') if key not in body]
            if missing:
                raise ValidationError(f"Відсутні поля: {', '.join(missing)}")

            record, artifact = self.service.create(
                body['nbCells'], body['capacity'], body['etatCharge']
            )
            payload = record.to_dict()
            payload['qrcode'] = str(artifact.path)
            return jsonify(payload), 201

        @self.app.route('/api/batteries/latest')
        def api_latest_battery():
            """Остання додана батарея."""
            record = self.service.latest()
            if record is None:
                raise NotFoundError("Батарей ще немає")
            return jsonify(record.to_dict())

        @self.app.route('/api/batteries/<battery_id>', methods=['GET'])
        def api_battery(battery_id: str):
            return jsonify(self.service.get(battery_id).to_dict())

        @self.app.route('/api/batteries/<battery_id>/state', methods=['PUT'])
        def api_battery_state(battery_id: str):
            """Змінити стан заряду."""
            body = self._json_body()
            if 'etatCharge' not in body:
                raise ValidationError("Відсутнє поле etatCharge")
            record = self.service.update_state(battery_id, body['etatCharge'])
            return jsonify(record.to_dict())

        @self.app.route('/api/batteries/<battery_id>', methods=['DELETE'])
        def api_delete_battery(battery_id: str):
            self.service.delete(battery_id)
            return '', 204

        @self.app.route('/api/batteries/<battery_id>/qrcode')
        def api_battery_qrcode(battery_id: str):
            """PNG з QR кодом батареї."""
            record = self.service.get(battery_id)
            path = self.service.codec.artifact_path(record.id)
            if not path.exists():
                path = self.service.render_codec(record.id).path
            return send_file(path.resolve(), mimetype='image/png')

        @self.app.route('/api/scan', methods=['POST'])
        def api_scan():
            """Знайти батарею за текстом з QR коду."""
            body = self._json_body()
            result = self.service.codec.try_decode(body.get('text'))
            if not result.ok:
                raise result.error
            return jsonify(self.service.get(result.identity).to_dict())

        @self.app.route('/api/export')
        def api_export():
            """Експорт усіх батарей (?format=json|csv)."""
            fmt = request.args.get('format', 'json')
            text = self.service.export_records(fmt)
            mimetype = 'application/json' if fmt == 'json' else 'text/csv'
            name = export_file_name(fmt, self.service.clock())
            return text, 200, {
                'Content-Type': f'{mimetype}; charset=utf-8',
                'Content-Disposition': f'attachment; filename={name}',
            }

        @self.app.route('/api/import', methods=['POST'])
        def api_import():
            """Імпорт батарей з тіла запиту (JSON або CSV)."""
            fmt = request.args.get('format')
            records = self.service.import_records(request.get_data(as_text=True), fmt)
            return jsonify({'imported': [str(record.id) for record in records]}), 201

    def start(self) -> None:
        """Запустити API сервер в окремому потоці."""
        if self.is_running:
            self.logger.warning("API сервер вже запущений")
            return

        def run_server():
            self.logger.info(f"Запуск API сервера на {self.host}:{self.port}")
            self.app.run(host=self.host, port=self.port, debug=self.debug, use_reloader=False)

        self.server_thread = threading.Thread(target=run_server, daemon=True)
        self.server_thread.start()
        self.is_running = True
        self.logger.info("API сервер запущено")

    def stop(self) -> None:
        """Зупинити API сервер."""
        # Flask не має прямого способу зупинки, тому просто позначаємо як зупинений
        self.is_running = False
        self.logger.info("API сервер зупинено")
