from .adapters.base import IKeyboardHook
from .adapters.scripted_hook import ScriptedKeyboardHook
from .factory import create_keyboard_hook
from .key_labels import ESCAPE

__all__ = [
    "IKeyboardHook",
    "ScriptedKeyboardHook",
    "create_keyboard_hook",
    "ESCAPE",
]
