"""
Human-readable key labels

Every hook adapter translates its platform key identifiers into the same
label vocabulary, so "Escape" means the same thing regardless of source.
"""

from typing import Optional

ESCAPE = "Escape"

# Labels shared by all sources
CHAR_LABELS = {
    " ": "Space",
    "-": "Minus",
    "=": "Equals",
    "[": "Open Bracket",
    "]": "Close Bracket",
    "\\": "Back Slash",
    ";": "Semicolon",
    "'": "Quote",
    "`": "Back Quote",
    ",": "Comma",
    ".": "Period",
    "/": "Slash",
}

# pynput keyboard.Key member names
PYNPUT_KEY_LABELS = {
    "esc": ESCAPE,
    "enter": "Enter",
    "space": "Space",
    "backspace": "Backspace",
    "tab": "Tab",
    "caps_lock": "Caps Lock",
    "shift": "Shift", "shift_l": "Shift", "shift_r": "Shift",
    "ctrl": "Ctrl", "ctrl_l": "Ctrl", "ctrl_r": "Ctrl",
    "alt": "Alt", "alt_l": "Alt", "alt_r": "Alt", "alt_gr": "Alt Graph",
    "cmd": "Meta", "cmd_l": "Meta", "cmd_r": "Meta",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "home": "Home",
    "end": "End",
    "page_up": "Page Up",
    "page_down": "Page Down",
    "insert": "Insert",
    "delete": "Delete",
    "menu": "Context Menu",
    "num_lock": "Num Lock",
    "scroll_lock": "Scroll Lock",
    "print_screen": "Print Screen",
    "pause": "Pause",
}

# evdev ecodes names with the KEY_ prefix removed
EVDEV_KEY_LABELS = {
    "ESC": ESCAPE,
    "ENTER": "Enter",
    "SPACE": "Space",
    "BACKSPACE": "Backspace",
    "TAB": "Tab",
    "CAPSLOCK": "Caps Lock",
    "LEFTSHIFT": "Shift", "RIGHTSHIFT": "Shift",
    "LEFTCTRL": "Ctrl", "RIGHTCTRL": "Ctrl",
    "LEFTALT": "Alt", "RIGHTALT": "Alt Graph",
    "LEFTMETA": "Meta", "RIGHTMETA": "Meta",
    "UP": "Up",
    "DOWN": "Down",
    "LEFT": "Left",
    "RIGHT": "Right",
    "HOME": "Home",
    "END": "End",
    "PAGEUP": "Page Up",
    "PAGEDOWN": "Page Down",
    "INSERT": "Insert",
    "DELETE": "Delete",
    "COMPOSE": "Context Menu",
    "NUMLOCK": "Num Lock",
    "SCROLLLOCK": "Scroll Lock",
    "SYSRQ": "Print Screen",
    "PAUSE": "Pause",
    "MINUS": "Minus",
    "EQUAL": "Equals",
    "LEFTBRACE": "Open Bracket",
    "RIGHTBRACE": "Close Bracket",
    "BACKSLASH": "Back Slash",
    "SEMICOLON": "Semicolon",
    "APOSTROPHE": "Quote",
    "GRAVE": "Back Quote",
    "COMMA": "Comma",
    "DOT": "Period",
    "SLASH": "Slash",
}


def _title(name: str) -> str:
    return " ".join(part.capitalize() for part in name.replace("_", " ").split())


def unknown_key_label(key_code: Optional[int]) -> str:
    if key_code is None:
        return "Unknown keyCode"
    return f"Unknown keyCode: 0x{key_code:X}"


def label_for_char(char: str, key_code: Optional[int] = None) -> str:
    """
    Label for a character ('a' -> 'A', '-' -> 'Minus')

    Control characters reported while Ctrl is held ('\\x01') map back to
    their letter; any other non-printable character gets the unknown label
    so raw control bytes never reach the log.
    """
    if char in CHAR_LABELS:
        return CHAR_LABELS[char]
    if len(char) == 1 and 0x01 <= ord(char) <= 0x1A:
        return chr(ord(char) + 0x40)
    if not char.isprintable():
        return unknown_key_label(key_code if key_code is not None else ord(char[0]))
    return char.upper()


def label_for_pynput_key(name: str) -> str:
    """Label for a pynput keyboard.Key member name ('esc' -> 'Escape')"""
    if name in PYNPUT_KEY_LABELS:
        return PYNPUT_KEY_LABELS[name]
    # f1..f20, media_play_pause, ...
    if name.startswith("f") and name[1:].isdigit():
        return name.upper()
    return _title(name)


def label_for_evdev_name(key_name: str) -> str:
    """Label for an evdev key name ('KEY_ESC' -> 'Escape', 'KEY_KP7' -> 'Num 7')"""
    name = key_name[4:] if key_name.startswith("KEY_") else key_name
    if name in EVDEV_KEY_LABELS:
        return EVDEV_KEY_LABELS[name]
    if len(name) == 1:
        return name
    if name.startswith("F") and name[1:].isdigit():
        return name
    if name.startswith("KP"):
        return f"Num {_title(name[2:])}".strip()
    return _title(name)
