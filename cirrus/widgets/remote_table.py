"""Reusable data table widget for listing remotes and remote folders."""

from textual.binding import Binding
from textual.widgets import DataTable


class RemoteTable(DataTable):
    """A row-cursor DataTable with vi-style movement keys."""

    BINDINGS = [
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("g", "scroll_home", "Top", show=False),
        Binding("G", "scroll_end", "Bottom", show=False),
    ]

    DEFAULT_CSS = """
    RemoteTable {
        height: 1fr;
    }
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, cursor_type="row", zebra_stripes=True, **kwargs)

    def action_scroll_home(self) -> None:
        """Move cursor to the first row."""
        if self.row_count > 0:
            self.move_cursor(row=0)

    def action_scroll_end(self) -> None:
        """Move cursor to the last row."""
        if self.row_count > 0:
            self.move_cursor(row=self.row_count - 1)

    def selected_key(self) -> str | None:
        """Key of the row under the cursor, or None when empty."""
        if self.row_count == 0:
            return None
        row_key, _ = self.coordinate_to_cell_key(self.cursor_coordinate)
        return row_key.value
