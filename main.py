"""
Головний файл програми обліку батарей SkyFuel.
"""

import argparse
import signal
import sys
from pathlib import Path
from threading import Event
from typing import List, Optional

from utils.config_manager import ConfigManager
from utils.errors import SkyFuelError
from utils.logger import Logger
from database.db import BatteryStore
from database.export import EXPORT_FORMATS, export_file_name
from codec.identity_codec import IdentityCodec
from controllers.battery_service import BatteryService
from api.server import APIServer


class SkyFuelApp:
    """Головний клас програми."""

    def __init__(self, config_path: str = "config.yaml", enable_console: bool = True):
        """
        Ініціалізація програми.

        Args:
            config_path: Шлях до файлу конфігурації
            enable_console: Чи виводити логи в консоль
        """
        self.config = ConfigManager(config_path)

        # Налаштування логування
        log_config = self.config.get_section('logging')
        logger = Logger()
        logger.setup(
            log_file=log_config.get('log_file', 'logs/skyfuel.log'),
            log_level=log_config.get('level', 'INFO'),
            enable_console=enable_console
        )
        self.logger = logger.get_logger()

        self.config.validate()

        self.logger.info("Ініціалізація компонентів...")

        # База даних
        db_config = self.config.get_section('database')
        self.store = BatteryStore(db_config.get('db_file', 'data/bdSkyFuel.sqlite'))
        self.store.open()

        # Кодек QR кодів
        codec_config = self.config.get_section('codec')
        self.codec = IdentityCodec(
            pictures_dir=codec_config.get('pictures_dir', 'pictures/SkyFuel'),
            size=codec_config.get('size', 500),
            error_correction=codec_config.get('error_correction', 'L'),
            watermark=codec_config.get('watermark', True)
        )

        self.service = BatteryService(self.store, self.codec)

        # API сервер
        api_config = self.config.get_section('api')
        if api_config.get('enabled', True):
            self.api_server: Optional[APIServer] = APIServer(self.service, self.config)
        else:
            self.api_server = None

        self.shutdown_event = Event()
        self.logger.info("Ініціалізація завершена")

    def _signal_handler(self, signum, frame):
        """Обробник сигналів для коректного завершення."""
        self.logger.info(f"Отримано сигнал {signum}, завершення роботи...")
        self.shutdown_event.set()

    def serve(self) -> None:
        """Запустити API сервер і чекати на сигнал завершення."""
        if self.api_server is None:
            self.logger.error("API вимкнено в конфігурації (api.enabled)")
            return

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.api_server.start()
        try:
            while not self.shutdown_event.is_set():
                self.shutdown_event.wait(1)
        except KeyboardInterrupt:
            self.logger.info("Отримано сигнал переривання")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Коректне завершення програми."""
        self.logger.info("Завершення роботи програми...")
        if self.api_server:
            self.api_server.stop()
        self.store.close()
        self.logger.info("Програма завершена")


def _print_record(record) -> None:
    print(f"{record.id}  {record.nb_cells} ел.  {record.capacity}  "
          f"{record.etat_charge.label:<8} оновлено {record.date_derniere_mis_a_jour.isoformat()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Облік батарей SkyFuel з QR кодами')
    parser.add_argument('--config', '-c', default='config.yaml', help='Шлях до файлу конфігурації')
    commands = parser.add_subparsers(dest='command')

    commands.add_parser('serve', help='Запустити REST API')

    add = commands.add_parser('add', help='Зареєструвати батарею')
    add.add_argument('--cells', type=int, required=True, help='Кількість елементів')
    add.add_argument('--capacity', type=int, required=True, help='Ємність')
    add.add_argument('--state', default='storage', help='low, storage або full')

    listing = commands.add_parser('list', help='Список батарей')
    listing.add_argument('--state', help='Фільтр за станом')

    show = commands.add_parser('show', help='Показати батарею')
    show.add_argument('battery_id', nargs='?', help='id батареї (за замовчуванням - остання)')

    set_state = commands.add_parser('set-state', help='Змінити стан заряду')
    set_state.add_argument('battery_id')
    set_state.add_argument('state', help='low, storage або full')

    delete = commands.add_parser('delete', help='Видалити батарею')
    delete.add_argument('battery_id')

    scan = commands.add_parser('scan', help='Знайти батарею за текстом з QR коду')
    scan.add_argument('text')

    export_cmd = commands.add_parser('export', help='Експортувати батареї в JSON або CSV')
    export_cmd.add_argument('--format', '-f', choices=EXPORT_FORMATS, default='json')
    export_cmd.add_argument('--output', '-o', help='Файл або директорія (за замовчуванням - stdout)')

    import_cmd = commands.add_parser('import', help='Імпортувати батареї з файлу експорту')
    import_cmd.add_argument('path')
    import_cmd.add_argument('--format', '-f', choices=EXPORT_FORMATS,
                            help='За замовчуванням визначається за вмістом')

    return parser


def run_command(app: SkyFuelApp, args: argparse.Namespace) -> int:
    """Виконати команду CLI, повертає код виходу."""
    service = app.service

    if args.command == 'add':
        record, artifact = service.create(args.cells, args.capacity, args.state)
        _print_record(record)
        print(f"QR код: {artifact.path}")
    elif args.command == 'list':
        records = service.list_all() if args.state is None else service.list_by_state(args.state)
        for record in records:
            _print_record(record)
    elif args.command == 'show':
        if args.battery_id:
            record = service.get(args.battery_id)
        else:
            record = service.latest()
            if record is None:
                print("Батарей ще немає")
                return 1
        _print_record(record)
        print(record.data)
    elif args.command == 'set-state':
        _print_record(service.update_state(args.battery_id, args.state))
    elif args.command == 'delete':
        record = service.delete(args.battery_id)
        print(f"Видалено {record.id}")
    elif args.command == 'scan':
        result = service.codec.try_decode(args.text)
        if not result.ok:
            print(f"QR код не розпізнано ({result.error.kind}): {result.error}", file=sys.stderr)
            return 1
        _print_record(service.get(result.identity))
    elif args.command == 'export':
        text = service.export_records(args.format)
        if args.output is None:
            print(text.rstrip("\n"))
            return 0
        path = Path(args.output)
        if path.is_dir():
            path = path / export_file_name(args.format, service.clock())
        try:
            path.write_text(text, encoding='utf-8')
        except OSError as e:
            print(f"Не вдалося записати {path}: {e}", file=sys.stderr)
            return 1
        print(f"Експорт збережено: {path}")
    elif args.command == 'import':
        try:
            text = Path(args.path).read_text(encoding='utf-8')
        except OSError as e:
            print(f"Не вдалося прочитати {args.path}: {e}", file=sys.stderr)
            return 1
        records = service.import_records(text, args.format)
        print(f"Імпортовано батарей: {len(records)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Головна функція."""
    args = build_parser().parse_args(argv)
    command = args.command or 'serve'

    try:
        app = SkyFuelApp(config_path=args.config, enable_console=command == 'serve')
    except (FileNotFoundError, ValueError, SkyFuelError) as e:
        print(f"Помилка ініціалізації: {e}", file=sys.stderr)
        return 1

    if command == 'serve':
        app.serve()
        return 0

    try:
        return run_command(app, args)
    except SkyFuelError as e:
        print(f"{e.kind}: {e}", file=sys.stderr)
        return 1
    finally:
        app.store.close()


if __name__ == '__main__':
    sys.exit(main())
