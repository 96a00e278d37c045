"""Custom application header widget with a small cloud mark."""

from rich.table import Table
from rich.text import Text
from textual.widget import Widget

from cirrus import __version__

CLOUD_ART = "  .--.\n.(    ).\n(___.__)"


class AppHeader(Widget):
    """App-wide header showing the cloud mark, app name, and version."""

    DEFAULT_CSS = """
    AppHeader {
        height: 3;
        background: $primary;
        color: $text;
        dock: top;
        padding: 0 1;
    }
    """

    def __init__(self, subtitle: str = "", **kwargs) -> None:
        super().__init__(**kwargs)
        self._subtitle = subtitle

    def render(self) -> Table:
        grid = Table.grid(expand=True)
        grid.add_column(width=9, no_wrap=True)
        grid.add_column(ratio=1)
        grid.add_column(width=10, no_wrap=True)

        cloud = Text(CLOUD_ART, style="bold")
        heading = "Cirrus" + (f" · {self._subtitle}" if self._subtitle else "")
        title = Text(f"\n{heading}", style="bold", justify="center")
        version = Text(f"\nv{__version__}", justify="right")

        grid.add_row(cloud, title, version)
        return grid
