"""CLI para reproducir sesiones grabadas, consultar y exportar el historial."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from ruta_tool.excel_writer import ExcelLayout, write_history_xlsx
from ruta_tool.metrics import DEFAULT_WEIGHT_KG, is_valid_weight
from ruta_tool.sources.replay import ReplayFeed
from ruta_tool.storage import SQLiteStore
from ruta_tool.tracker import WEIGHT_KEY, SessionTracker

DEFAULT_DB = Path.home() / ".ruta_tool" / "ruta_tool.sqlite3"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Seguimiento de actividad: distancia, pasos, tarifa y calorías."
    )
    parser.add_argument(
        "--db",
        default=str(DEFAULT_DB),
        help="Base SQLite (default: ~/.ruta_tool/ruta_tool.sqlite3).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Nivel de logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Reproduce una sesión grabada (CSV).")
    replay.add_argument("csv", help="Archivo CSV con fixes y aceleraciones.")
    replay.add_argument(
        "--weight",
        type=float,
        default=None,
        help="Peso en kg para esta reproducción (default: preferencia guardada).",
    )
    replay.add_argument(
        "--no-save",
        action="store_true",
        help="No guarda la sesión en el historial.",
    )

    sub.add_parser("history", help="Lista las sesiones guardadas.")

    export = sub.add_parser("export", help="Exporta el historial a Excel.")
    export.add_argument("--out", default=None, help="Ruta del .xlsx de salida.")

    weight = sub.add_parser("weight", help="Muestra o guarda el peso (kg).")
    weight.add_argument("kg", nargs="?", type=float, default=None)

    return parser.parse_args(argv)


class _NullStore:
    def insert(self, distance_m: float, steps: int, calories: float, fare: int) -> int:
        return 0


class _FixedWeight:
    def __init__(self, weight: float) -> None:
        self._weight = weight

    def get_double(self, key: str) -> float | None:
        return self._weight if key == WEIGHT_KEY else None

    def set_double(self, key: str, value: float) -> None:
        pass


def _cmd_replay(ns: argparse.Namespace, store: SQLiteStore) -> int:
    if ns.weight is not None and not is_valid_weight(ns.weight):
        print("ERROR: el peso debe ser un número positivo")
        return 2
    feed = ReplayFeed.from_csv(Path(ns.csv).expanduser())
    tracker = SessionTracker(
        [feed.gps, feed.accelerometer],
        store=_NullStore() if ns.no_save else store,
        preferences=store if ns.weight is None else _FixedWeight(ns.weight),
        clock=feed.clock,
    )
    started = tracker.start()
    if not started:
        print("ERROR: la grabación no tiene muestras utilizables")
        tracker.stop()
        return 1

    feed.pump_all()
    final = tracker.snapshot()
    record_id = tracker.stop()

    print(f"OK: Sensores: {', '.join(started)}")
    print(f"OK: Distancia: {final.distance_m:.1f} m")
    print(f"OK: Pasos: {final.steps}")
    print(f"OK: Tarifa: Tk. {final.fare}")
    print(f"OK: Calorías: {final.calories:.2f} Cal")
    if record_id:
        print(f"OK: Sesión guardada: {record_id}")
    else:
        print("OK: Sesión no guardada")
    return 0


def _cmd_history(store: SQLiteStore) -> int:
    records = store.get_all()
    if not records:
        print("Sin sesiones guardadas.")
        return 0
    for r in records:
        print(
            f"{r.id:>4}  {r.date:%d/%m/%Y %H:%M}  {r.distance_m:>10.1f} m  "
            f"{r.steps:>6} pasos  {r.calories:>8.2f} Cal  Tk. {r.fare}"
        )
    return 0


def _cmd_export(ns: argparse.Namespace, store: SQLiteStore) -> int:
    if ns.out:
        out_path = Path(ns.out).expanduser()
    else:
        config = store.load_config()
        out_dir = (
            Path(config.export_dir).expanduser()
            if config.export_dir
            else Path.cwd() / "salidas"
        )
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        out_path = out_dir / f"ruta_historial_{timestamp}.xlsx"

    write_history_xlsx(store.history_frame(), out_path, ExcelLayout())
    print(f"OK: Output: {out_path}")
    return 0


def _cmd_weight(ns: argparse.Namespace, store: SQLiteStore) -> int:
    if ns.kg is None:
        weight = store.get_double(WEIGHT_KEY)
        print(f"{weight if weight is not None else DEFAULT_WEIGHT_KG:g} kg")
        return 0
    if not is_valid_weight(ns.kg):
        print("ERROR: el peso debe ser un número positivo")
        return 2
    store.set_double(WEIGHT_KEY, ns.kg)
    print(f"OK: Peso guardado: {ns.kg:g} kg")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code (0 on success).
    """
    ns = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, ns.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = SQLiteStore(Path(ns.db).expanduser())

    if ns.command == "replay":
        return _cmd_replay(ns, store)
    if ns.command == "history":
        return _cmd_history(store)
    if ns.command == "export":
        return _cmd_export(ns, store)
    return _cmd_weight(ns, store)
