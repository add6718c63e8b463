import os
import sys
import importlib.util


class RuntimeInfo:
    """Platform and optional-dependency checks used to pick a keyboard hook"""

    @classmethod
    def is_linux(cls) -> bool:
        return sys.platform.startswith("linux")

    @classmethod
    def is_windows(cls) -> bool:
        return sys.platform.startswith("win")

    @classmethod
    def is_macos(cls) -> bool:
        return sys.platform == "darwin"

    @classmethod
    def has_display(cls) -> bool:
        """pynput on Linux needs an X server (or XWayland)"""
        if not cls.is_linux():
            return True
        return bool(os.environ.get("DISPLAY"))

    @classmethod
    def has_pynput(cls) -> bool:
        return cls.has_module("pynput")

    @classmethod
    def has_evdev(cls) -> bool:
        return cls.is_linux() and cls.has_module("evdev")

    @classmethod
    def has_module(cls, module_name: str) -> bool:
        try:
            return importlib.util.find_spec(module_name) is not None
        except (ImportError, ValueError):
            return False
