from .adapter import MemoryScope, MemoryStorageAdapter  # noqa: F401
