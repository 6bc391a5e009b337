from .adapter import SQLAStorageAdapter  # noqa: F401
