from .backup import export_backup, import_backup, parse_event
from .store import GLOBAL_CONTEXT, EventStore, context_key

__all__ = [
    "GLOBAL_CONTEXT",
    "EventStore",
    "context_key",
    "export_backup",
    "import_backup",
    "parse_event",
]
