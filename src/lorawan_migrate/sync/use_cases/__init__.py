"""Use cases layer - Import and clean workflows.

Use cases depend only on the INetworkServerAPI port, not on aiohttp.
"""

from .clean_resources import CleanResourcesUseCase
from .import_applications import ImportApplicationsUseCase
from .import_networks import ImportNetworksUseCase

__all__ = [
    "CleanResourcesUseCase",
    "ImportApplicationsUseCase",
    "ImportNetworksUseCase",
]
