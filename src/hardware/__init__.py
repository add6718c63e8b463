"""
Hardware Layer

Low-level input sources only:

- Global keyboard hooks (pynput, evdev) behind IKeyboardHook
- Key label translation shared by all hooks
"""
