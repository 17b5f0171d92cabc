from enum import Enum


class UIStyle(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    DIM = "dim"
    WHITE = "white"


LANG_STYLE = {
    "go": UIStyle.CYAN.value,
    "proto": UIStyle.MAGENTA.value,
}
