"""Live monitoring of risky file creation"""

from .batcher import EventBatcher, LoopScheduler, WatchState
from .decisions import DecisionHandler
from .file_handler import CreatedFileHandler
from .monitor import FileCreationMonitor

__all__ = [
    'CreatedFileHandler',
    'DecisionHandler',
    'EventBatcher',
    'FileCreationMonitor',
    'LoopScheduler',
    'WatchState',
]
