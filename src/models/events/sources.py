from enum import Enum, auto


class KeyboardSource(Enum):
    """Keyboard hook implementations that can produce events"""
    PYNPUT = auto()     # Global listener (X11 / Windows / macOS)
    EVDEV = auto()      # Linux /dev/input/event* device
    SCRIPTED = auto()   # In-process scripted source (tests, dry runs)
