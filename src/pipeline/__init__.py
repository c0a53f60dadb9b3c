"""
Pipeline Module for relation boundary acquisition.

Runs a relation load end to end and publishes its result to observable
state holders; also holds the persisted user settings.
"""

from .orchestrator import (
    AcquisitionOrchestrator,
    AnalysisInput,
    CancellationToken,
    LoadResult,
    LoadStage,
)
from .settings import SettingsFile, UserSettings, persistent_store
from .state import AppState, Store

__all__ = [
    "AcquisitionOrchestrator",
    "AnalysisInput",
    "AppState",
    "CancellationToken",
    "LoadResult",
    "LoadStage",
    "SettingsFile",
    "Store",
    "UserSettings",
    "persistent_store",
]
