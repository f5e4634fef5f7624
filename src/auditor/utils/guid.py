# src/auditor/utils/guid.py
import threading
import uuid


class GUID:
    """
    Identifier allocation for tagging trace events.

    Two independent modes:
      - simple ids: a process-wide integer counter starting at 1. Not unique
        between runs, but fast and tiny.
      - UUID4 strings: random version 4 UUIDs, practically unique between
        runs, so they can be serialized and compared across runs.
    """

    _lock = threading.Lock()
    _next_guid = 1

    @classmethod
    def allocate_simple(cls) -> int:
        """Allocates the next integer id."""
        with cls._lock:
            guid = cls._next_guid
            cls._next_guid += 1
        return guid

    @classmethod
    def get_last_simple_guid(cls) -> int:
        """Returns the last allocated integer id without allocating (0 if none yet)."""
        with cls._lock:
            return cls._next_guid - 1

    @staticmethod
    def allocate_uuid4() -> str:
        """Returns a random UUID in canonical 8-4-4-4-12 form, e.g. 'xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx'."""
        return str(uuid.uuid4())

    @classmethod
    def reset(cls) -> None:
        """Restarts the simple counter at 1. Only meant for tests."""
        with cls._lock:
            cls._next_guid = 1
