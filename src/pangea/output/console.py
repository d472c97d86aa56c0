"""Rich Console factory and theme for pangea output.

Consoles render into a StringIO buffer so formatting stays a pure
``ServiceResult -> str`` function. In non-TTY environments (tests, pipes)
Rich drops color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

PANGEA_THEME = Theme(
    {
        "pangea.ok": "bold green",
        "pangea.error": "bold red",
        "pangea.warning": "bold yellow",
        "pangea.op": "bold cyan",
        "pangea.key": "dim",
        "pangea.template": "bold blue",
        "pangea.output": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=PANGEA_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
