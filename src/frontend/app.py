"""Textual queue browser for the relay."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional

from rich.text import Text
from textual import on
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Footer, Static, Tab, Tabs

from adapters.sqlite_storage import SQLiteStorage
from core.models import QueueStatus

from .constants import EXPORTS_DIR, STATUS_FILTERS, TELEGRAM_BLUE
from .exporting import entry_to_row, export_rows

ROW_LIMIT = 500


class QueueBrowserApp(App):
    """Browse queue entries by status and export them to JSON/CSV."""

    BINDINGS = [
        ("r", "refresh", "Refresh"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #0f1a21;
        color: #e8eef5;
    }

    #header {
        height: 5;
        padding: 1 4;
        border-bottom: solid #2a3a46;
    }

    #title {
        text-style: bold;
    }

    .subtle {
        color: #c6d2dd;
    }

    #tabs-bar {
        height: 4;
        padding: 0 4;
        align: center middle;
    }

    #queue-table {
        height: 1fr;
    }

    #queue-actions {
        height: 3;
    }
    """

    def __init__(self, db_path: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._db_path = db_path
        self._storage = SQLiteStorage(db_path)
        self._status: Optional[QueueStatus] = None
        self._rows: list[dict[str, Any]] = []

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            yield Static(self._title_text(), id="title")
            yield Static(f"db: {Path(self._db_path).name}", classes="subtle")
        with Container(id="tabs-bar"):
            with Center():
                yield Tabs(*(Tab(name.title(), id=name) for name in STATUS_FILTERS), id="tabs")
        with Vertical():
            yield DataTable(id="queue-table", cursor_type="row")
            with Horizontal(id="queue-actions"):
                yield Button("Refresh", id="refresh")
                yield Button("Export JSON", id="export-json", variant="success")
                yield Button("Export CSV", id="export-csv")
            yield Static("", id="queue-output")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#queue-table", DataTable)
        table.add_column("id", key="id", width=6)
        table.add_column("created", key="created_at", width=19)
        table.add_column("status", key="status", width=8)
        table.add_column("kind", key="kind", width=9)
        table.add_column("source", key="source", width=20)
        table.add_column("text", key="text", width=40)
        table.add_column("error", key="error_message", width=30)
        table.zebra_stripes = True
        self._load_entries()

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or "all"
        self._status = None if tab_id == "all" else QueueStatus(tab_id)
        self._load_entries()

    def action_refresh(self) -> None:
        self._load_entries()

    @on(Button.Pressed, "#refresh")
    def _on_refresh(self) -> None:
        self._load_entries()

    @on(Button.Pressed, "#export-json")
    def _on_export_json(self) -> None:
        self._export("json")

    @on(Button.Pressed, "#export-csv")
    def _on_export_csv(self) -> None:
        self._export("csv")

    def _load_entries(self) -> None:
        table = self.query_one("#queue-table", DataTable)
        table.clear()
        if not Path(self._db_path).exists():
            self._rows = []
            self._set_output(f"db not found: {self._db_path}")
            return
        try:
            entries = self._storage.select_entries(self._status, ROW_LIMIT)
        except sqlite3.Error as exc:
            self._rows = []
            self._set_output(f"db error: {exc}")
            return

        self._rows = [entry_to_row(entry) for entry in entries]
        for row in self._rows:
            table.add_row(
                str(row["id"]),
                row["created_at"].replace("T", " ")[:19],
                row["status"],
                row["kind"],
                row["source"],
                self._clip_text(row["text"]),
                self._clip_text(row["error_message"], 30),
                key=str(row["id"]),
            )
        label = self._status.value if self._status else "all"
        self._set_output(f"loaded {len(self._rows)} {label} entries")

    def _export(self, fmt: str) -> None:
        if not self._rows:
            self._set_output("No entries to export.")
            return
        try:
            path = export_rows(self._rows, EXPORTS_DIR, fmt)
        except OSError as exc:
            self._set_output(f"export failed: {exc.strerror or exc}")
            return
        self._set_output(f"exported {len(self._rows)} entries to {path}")

    def _set_output(self, message: str) -> None:
        self.query_one("#queue-output", Static).update(message)

    @staticmethod
    def _clip_text(value: str, limit: int = 40) -> str:
        value = (value or "").replace("\n", " ")
        if len(value) <= limit:
            return value
        return value[: limit - 3] + "..."

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("TELE", TELEGRAM_BLUE),
            ("RELAY > Queue", "bold"),
        )
