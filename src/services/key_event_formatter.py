"""
Log line formatting for keyboard events

Line format:
    "<EventKind>: <KeyLabel>. Time: <yyyy-MM-dd HH:mm:ss>"
"""

from models.events import KeyEvent, KeyEventKind

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

EVENT_KIND_LABELS = {
    KeyEventKind.PRESSED: "Key Pressed",
    KeyEventKind.RELEASED: "Key Released",
}

UNKNOWN_EVENT_LABEL = "Unknown Key Event"


def describe_kind(kind) -> str:
    """Human string for an event kind; anything unrecognized is 'Unknown Key Event'"""
    return EVENT_KIND_LABELS.get(kind, UNKNOWN_EVENT_LABEL)


def format_event(event: KeyEvent) -> str:
    return "{kind}: {label}. Time: {time}".format(
        kind=describe_kind(event.kind),
        label=event.key_label,
        time=event.occurred_at.strftime(TIMESTAMP_FORMAT),
    )
