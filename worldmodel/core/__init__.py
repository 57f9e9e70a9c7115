# worldmodel/core/__init__.py
"""Core world model components."""

from .config import WorldModelConfig, configure_logging
from .session_context import SessionContextBuilder, IntentAnalysis
from .ingester import SessionIngester, IngestionResult, IngestionStats

__all__ = [
    'WorldModelConfig',
    'configure_logging',
    'SessionContextBuilder',
    'IntentAnalysis',
    'SessionIngester',
    'IngestionResult',
    'IngestionStats'
]
