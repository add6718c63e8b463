from enum import Enum, auto


class KeyEventKind(Enum):
    """Kind of a normalized keyboard event"""
    PRESSED = auto()
    RELEASED = auto()
