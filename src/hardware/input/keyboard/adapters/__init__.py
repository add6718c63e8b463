from .base import IKeyboardHook, KeyCallback, ErrorCallback
from .scripted_hook import ScriptedKeyboardHook

__all__ = [
    "IKeyboardHook",
    "KeyCallback",
    "ErrorCallback",
    "ScriptedKeyboardHook",
]
