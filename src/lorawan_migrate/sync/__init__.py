"""Sync module - Clean Architecture implementation of the migration.

Architecture:
    domain/     - Pure domain entities and port interfaces
    use_cases/  - Import and clean workflows
    adapters/   - Source readers (gRPC, CSV), mappers, destination REST adapter
"""

from .domain.entities import (
    Application,
    Device,
    Gateway,
    Network,
    SyncResult,
)
from .domain.ports import INetworkServerAPI, ISourceReader

__all__ = [
    # Entities
    "Application",
    "Device",
    "Gateway",
    "Network",
    "SyncResult",
    # Ports
    "INetworkServerAPI",
    "ISourceReader",
]
