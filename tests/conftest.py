import io

import pytest
from rich.console import Console

from hostprobe.services.console import TextDisplay


@pytest.fixture
def text_display():
    """TextDisplay writing uncoloured output into a buffer: (display, buffer)."""
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, highlight=False)
    return TextDisplay(console=console, colorize=False), buffer
