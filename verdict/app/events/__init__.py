from .models import VerdictEvent, VerdictEventType
from .emitter import VerdictEventEmitter, NullEventEmitter
from .memory_emitter import MemoryQueueEventEmitter

__all__ = [
    "VerdictEvent",
    "VerdictEventType",
    "VerdictEventEmitter",
    "NullEventEmitter",
    "MemoryQueueEventEmitter",
]
