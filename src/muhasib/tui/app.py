from __future__ import annotations

from datetime import date

from textual.app import App, ComposeResult  # type: ignore[import]
from textual.binding import Binding  # type: ignore[import]
from textual.containers import Vertical  # type: ignore[import]
from textual.message import Message  # type: ignore[import]
from textual.widgets import DataTable, Footer, Header, Static  # type: ignore[import]

from ..config import ConfigManager, MuhasibConfig
from ..models import DayView
from ..navigator import DayNavigator
from ..services.cache import PrayerCache
from ..services.completion import CompletionStore
from ..services.location import LocationProvider, provider_from_config
from ..services.storage import JsonFileStore
from ..services.sync import SyncEngine
from ..services.timings import AladhanClient
from ..timeutils import day_label


def build_engine(config: MuhasibConfig, navigator: DayNavigator | None = None) -> SyncEngine:
    store = JsonFileStore(config.storage.path)
    return SyncEngine(
        cache=PrayerCache(store, freshness=config.cache.freshness),
        completion=CompletionStore(store, scope=config.storage.completion_scope),
        client=AladhanClient(config.prayer_settings),
        navigator=navigator,
    )


def prayer_rows(view: DayView) -> list[tuple[str, str, str]]:
    return [
        ("✔" if prayer.checked else "○", prayer.name.value, prayer.time or "--:--")
        for prayer in view.prayers
    ]


def status_text(view: DayView, today: date | None = None) -> str:
    parts = [day_label(view.current_day, today), f"Completed prayers: {view.completed_count}"]
    if view.loading:
        parts.append("Loading…")
    if view.error_msg:
        parts.append(f"Error: {view.error_msg}")
    if view.warning:
        parts.append(f"Warning: {view.warning}")
    return " • ".join(parts)


class ViewPublished(Message):
    def __init__(self, view: DayView) -> None:
        super().__init__()
        self.day_view = view


class PrayerTable(DataTable):
    BINDINGS = [
        Binding("j", "cursor_down", "Next Prayer", show=False),
        Binding("k", "cursor_up", "Previous Prayer", show=False),
        Binding("h", "app.previous_day", "Previous Day", show=False),
        Binding("l", "app.next_day", "Next Day", show=False),
        Binding("left", "app.previous_day", "Previous Day"),
        Binding("right", "app.next_day", "Next Day"),
        Binding("space", "app.toggle_selected", "Toggle Prayer"),
    ]

    def __init__(self) -> None:
        super().__init__(zebra_stripes=True)
        self.cursor_type = "row"
        self.show_cursor = True
        self.id = "prayer-table"


class MuhasibApp(App):
    CSS = """
    Screen {
        background: $surface;
    }

    #day-panel {
        border: round $accent;
        padding: 1 2;
        background: $boost;
        height: 1fr;
    }

    .panel-title {
        text-style: bold;
        color: $text;
        margin-bottom: 1;
    }

    #prayer-table {
        height: 1fr;
    }
    """
    TITLE = "Muhasib Prayer Tracker"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("p", "previous_day", "Previous Day"),
        Binding("n", "next_day", "Next Day"),
        Binding("t", "today", "Today"),
    ]

    def __init__(
        self,
        engine: SyncEngine | None = None,
        location_provider: LocationProvider | None = None,
    ) -> None:
        super().__init__()
        self.config_manager: ConfigManager | None = None
        if engine is None or location_provider is None:
            self.config_manager = ConfigManager()
            config = self.config_manager.load()
            engine = engine or build_engine(config)
            location_provider = location_provider or provider_from_config(config.location)
        self.engine = engine
        self.location_provider = location_provider
        self.day_view: DayView = engine.snapshot()
        self.prayer_table: PrayerTable | None = None
        self.day_header = Static(day_label(self.day_view.current_day), classes="panel-title")
        self.status_line = Static("", id="status-line")

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self.prayer_table = PrayerTable()
        yield Vertical(self.day_header, self.status_line, self.prayer_table, id="day-panel")
        yield Footer()

    def on_mount(self) -> None:
        if self.prayer_table is None:
            return
        self.prayer_table.add_columns("Done", "Prayer", "Time")
        self.prayer_table.focus()
        if self.config_manager is not None and self.config_manager.errors():
            self.notify("\n".join(self.config_manager.errors()), title="Config", severity="warning")
        # engine callbacks arrive on worker threads; post_message is thread-safe
        self.engine.subscribe(lambda view: self.post_message(ViewPublished(view)))
        self.engine.start(self.location_provider)

    def on_view_published(self, message: ViewPublished) -> None:
        self.render_view(message.day_view)

    def render_view(self, view: DayView) -> None:
        self.day_view = view
        self.day_header.update(day_label(view.current_day))
        self.status_line.update(status_text(view))
        table = self.prayer_table
        if table is None:
            return
        cursor_row = table.cursor_row
        table.clear()
        for row in prayer_rows(view):
            table.add_row(*row)
        if table.row_count:
            table.move_cursor(row=min(cursor_row, table.row_count - 1))

    def selected_prayer_id(self) -> int | None:
        if self.prayer_table is None or not self.day_view.prayers:
            return None
        row = self.prayer_table.cursor_row
        if not 0 <= row < len(self.day_view.prayers):
            return None
        return self.day_view.prayers[row].id

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.action_toggle_selected()

    def action_toggle_selected(self) -> None:
        prayer_id = self.selected_prayer_id()
        if prayer_id is None:
            return
        self.engine.toggle(prayer_id)

    def action_previous_day(self) -> None:
        self.engine.previous_day()

    def action_next_day(self) -> None:
        self.engine.next_day()

    def action_today(self) -> None:
        self.engine.today()

    def on_unmount(self) -> None:
        self.engine.close()
