"""Adapters layer - Infrastructure implementations for the migration.

- GrpcSourceReader: ChirpStack v4 implementation of ISourceReader
- CsvSourceReader: Kerlink WMC export implementation of ISourceReader
- ChirpstackMapper / KerlinkMapper: provider records to domain entities
- NetworkServerAPI: LORIOT REST implementation of INetworkServerAPI
"""

from .chirpstack_mapper import ChirpstackMapper
from .csv_reader import CsvSourceReader
from .grpc_reader import GrpcSourceReader
from .kerlink_mapper import KerlinkMapper
from .network_server_api import NetworkServerAPI

__all__ = [
    # Sources
    "ChirpstackMapper",
    "CsvSourceReader",
    "GrpcSourceReader",
    "KerlinkMapper",
    # Destination
    "NetworkServerAPI",
]
