from .owner_thread import OwnerThreadDispatcher

__all__ = ["OwnerThreadDispatcher"]
