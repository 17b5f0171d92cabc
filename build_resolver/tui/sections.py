from typing import Iterable, Optional

from rich.panel import Panel
from rich.text import Text

from build_resolver.tui.enums import UIStyle


class UISection:
    @staticmethod
    def wrap(title: str, body, style: str = UIStyle.BLUE.value, subtitle: Optional[str] = None) -> Panel:
        return Panel(body, title=title, subtitle=subtitle, border_style=style, padding=(0, 1))

    @staticmethod
    def note(title: str, body: str, style: str = UIStyle.DIM.value) -> Panel:
        return Panel(Text(body), title=title, border_style=style, padding=(0, 1))

    @staticmethod
    def bullets(title: str, items: Iterable[object], style: str) -> Panel:
        body = Text("\n".join(f"- {item}" for item in items))
        return Panel(body, title=title, border_style=style, padding=(0, 1))
