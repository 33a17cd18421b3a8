"""App Kivy: pantalla de seguimiento, historial y ajustes con persistencia SQLite."""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from ruta_tool.errors import PersistenceError
from ruta_tool.metrics import DEFAULT_WEIGHT_KG, is_valid_weight
from ruta_tool.model import HistoryRecord
from ruta_tool.sources.base import GPS
from ruta_tool.sources.replay import ReplayFeed
from ruta_tool.storage import AppConfig, SQLiteStore
from ruta_tool.tracker import WEIGHT_KEY, SessionObserver, SessionTracker

logger = logging.getLogger(__name__)

GPS_OK_TEXT = "GPS OK"
GPS_NOT_DETECTED = "GPS no detectado"
NOT_AVAILABLE = "N/A"


def run_app() -> int:
    """Lanza la app Kivy."""
    from kivy.app import App
    from kivy.clock import Clock
    from kivy.core.window import Window
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.label import Label
    from kivy.uix.popup import Popup
    from kivy.uix.textinput import TextInput

    class RutaToolApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.store = SQLiteStore(Path.cwd() / "ruta_tool.sqlite3")
            self.app_config = self.store.load_config()
            self.labels: dict[str, Label] = {}
            self.status: Label | None = None
            self.display = LabelDisplay(self.labels, self._set_status)
            self.feed = _open_feed(self.app_config)
            self.tracker = self._build_tracker()
            self._pump_event: object | None = None

        def _build_tracker(self) -> SessionTracker:
            tracker = SessionTracker(
                [self.feed.gps, self.feed.accelerometer],
                store=self.store,
                preferences=self.store,
            )
            tracker.add_observer(self.display)
            return tracker

        def build(self) -> BoxLayout:
            Window.bind(on_key_down=self._on_key_down)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            for key, title, initial in (
                ("gps", "GPS", GPS_NOT_DETECTED),
                ("steps", "Pasos", format_steps(0)),
                ("distance", "Distancia", NOT_AVAILABLE),
                ("fare", "Tarifa ahorrada", NOT_AVAILABLE),
                ("calories", "Calorías", NOT_AVAILABLE),
            ):
                row = BoxLayout(orientation="horizontal", size_hint_y=None, height=48)
                row.add_widget(Label(text=title, size_hint_x=0.4))
                value = Label(text=initial, font_size="22sp")
                row.add_widget(value)
                self.labels[key] = value
                root.add_widget(row)

            actions = BoxLayout(
                orientation="horizontal",
                spacing=8,
                size_hint_y=None,
                height=48,
            )
            for text, callback in (
                ("Iniciar", self._on_start),
                ("Detener", self._on_stop),
                ("Historial", self._open_history_popup),
                ("Ajustes", self._open_settings_popup),
                ("Salir", lambda *_args: self.stop()),
            ):
                btn = Button(text=text)
                btn.bind(on_press=callback)
                actions.add_widget(btn)
            root.add_widget(actions)

            self.status = Label(text="Listo", size_hint_y=None, height=30)
            root.add_widget(self.status)
            return root

        def on_stop(self) -> None:
            self.tracker.stop()

        def _on_key_down(
            self,
            _window: object,
            keycode: int,
            _scancode: int,
            _text: str,
            _modifiers: list[str],
        ) -> bool:
            # Esc / back de Android: salir.
            if keycode != 27:
                return False
            self.stop()
            return True

        def _on_start(self, _: object) -> None:
            started = start_session(self.feed, self.tracker)
            self.labels["gps"].text = (
                GPS_OK_TEXT if GPS in started else GPS_NOT_DETECTED
            )
            if self._pump_event is None and started:
                self._pump_event = Clock.schedule_interval(
                    self._pump, self.app_config.replay_interval_s
                )
            if started:
                self._set_status("Sesión en curso")

        def _pump(self, _dt: float) -> bool:
            self.feed.pump()
            if self.feed.exhausted:
                self._pump_event = None
                self._set_status("Grabación terminada; pulse Detener")
                return False
            return True

        def _on_stop(self, _: object) -> None:
            if self._pump_event is not None:
                Clock.unschedule(self._pump)
                self._pump_event = None
            record_id = self.tracker.stop()
            if record_id:
                self._set_status(f"Sesión {record_id} guardada.")
            else:
                self._set_status("Sesión detenida sin movimiento.")

        def _open_history_popup(self, _: object) -> None:
            try:
                records = self.store.get_all()
            except PersistenceError as exc:
                self._show_error("leer historial", exc)
                return
            text = format_history(records) or "Sin sesiones guardadas."
            content = BoxLayout(orientation="vertical")
            content.add_widget(
                TextInput(text=text, readonly=True, multiline=True, do_wrap=False)
            )
            close_btn = Button(text="Cerrar", size_hint_y=None, height=42)
            content.add_widget(close_btn)
            popup = Popup(title="Historial", content=content, size_hint=(0.95, 0.9))
            close_btn.bind(on_press=lambda *_args: popup.dismiss())
            popup.open()

        def _open_settings_popup(self, _: object) -> None:
            weight = self.tracker.weight_kg()
            content = BoxLayout(orientation="vertical", spacing=8, padding=8)

            def make_row(label: str, initial: str) -> TextInput:
                row = BoxLayout(orientation="horizontal", size_hint_y=None, height=40)
                row.add_widget(Label(text=label, size_hint_x=0.4))
                inp = TextInput(text=initial, multiline=False)
                row.add_widget(inp)
                content.add_widget(row)
                return inp

            weight_input = make_row("Peso (kg)", f"{weight:.0f}")
            weight_input.input_filter = "float"
            samples_input = make_row("Grabación (CSV)", self.app_config.samples_path)

            footer = BoxLayout(orientation="horizontal", size_hint_y=None, height=42)
            cancel_btn = Button(text="Cancelar")
            save_btn = Button(text="Guardar")
            footer.add_widget(cancel_btn)
            footer.add_widget(save_btn)
            content.add_widget(footer)

            popup = Popup(title="Ajustes", content=content, size_hint=(0.9, 0.6))
            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())
            save_btn.bind(
                on_press=lambda *_args: self._save_settings(
                    popup, weight_input.text, samples_input.text
                )
            )
            popup.open()

        def _save_settings(self, popup: Popup, weight_text: str, samples: str) -> None:
            weight = parse_weight(weight_text)
            try:
                self.store.set_double(WEIGHT_KEY, weight)
                self.app_config = AppConfig(
                    samples_path=samples.strip(),
                    export_dir=self.app_config.export_dir,
                    replay_interval_s=self.app_config.replay_interval_s,
                )
                self.store.save_config(self.app_config)
            except PersistenceError as exc:
                self._show_error("guardar ajustes", exc)
                return
            popup.dismiss()
            if not self.tracker.running:
                self.tracker.remove_observer(self.display)
                self.feed = _open_feed(self.app_config)
                self.tracker = self._build_tracker()
            self._set_status(f"Ajustes guardados (peso {weight:g} kg).")

        def _set_status(self, text: str) -> None:
            if self.status is not None:
                self.status.text = text

        def _show_error(self, action: str, exc: Exception) -> None:
            logger.error("Error al %s: %s\n%s", action, exc, traceback.format_exc())
            self._set_status(f"Error al {action} ({type(exc).__name__}): {exc}")

    RutaToolApp().run()
    return 0


class LabelDisplay(SessionObserver):
    """Mirrors tracker notifications into text widgets keyed by metric."""

    def __init__(
        self, labels: Mapping[str, Any], set_status: Callable[[str], None]
    ) -> None:
        self._labels = labels
        self._set_status = set_status

    def _set(self, key: str, text: str) -> None:
        label = self._labels.get(key)
        if label is not None:
            label.text = text

    def on_steps_changed(self, steps: int) -> None:
        self._set("steps", format_steps(steps))

    def on_distance_changed(self, distance_m: float) -> None:
        self._set("distance", format_distance(distance_m))

    def on_fare_changed(self, fare: int) -> None:
        self._set("fare", format_fare(fare))

    def on_calories_changed(self, calories: float) -> None:
        self._set("calories", format_calories(calories))

    def on_sensor_unavailable(self, modality: str, error: Exception) -> None:
        if modality == GPS:
            self._set("gps", GPS_NOT_DETECTED)
        self._set_status(f"Sensor no disponible: {error}")


def start_session(feed: ReplayFeed, tracker: SessionTracker) -> list[str]:
    """Start the tracker, replaying a finished recording only from Idle.

    A running session keeps its distance reference, so its recording is
    never rewound.
    """
    if feed.exhausted and not tracker.running:
        feed.rewind()
    return tracker.start()


def _open_feed(config: AppConfig) -> ReplayFeed:
    if not config.samples_path:
        return ReplayFeed([])
    try:
        return ReplayFeed.from_csv(Path(config.samples_path).expanduser())
    except (FileNotFoundError, ValueError) as exc:
        logger.warning("No se pudo abrir la grabacion: %s", exc)
        return ReplayFeed([])


def format_steps(steps: int) -> str:
    return f"{steps}"


def format_distance(distance_m: float) -> str:
    return f"{distance_m:g} m"


def format_fare(fare: int) -> str:
    return f"Tk. {fare}"


def format_calories(calories: float) -> str:
    return f"{calories:.2f} Cal"


def parse_weight(text: str) -> float:
    """Parse the weight entry; unusable or non-positive input gives 70 kg."""
    try:
        value = float(text.strip().replace(",", "."))
    except ValueError:
        return DEFAULT_WEIGHT_KG
    return value if is_valid_weight(value) else DEFAULT_WEIGHT_KG


def format_history(records: list[HistoryRecord]) -> str:
    """Render history records as aligned text lines, newest first."""
    lines = [
        f"{r.id:>4}  {r.date:%d/%m/%Y %H:%M}  {format_distance(round(r.distance_m, 1)):>12}"
        f"  {r.steps:>6} pasos  {format_calories(r.calories):>12}  {format_fare(r.fare)}"
        for r in reversed(records)
    ]
    return "\n".join(lines)
