"""Domain layer - Pure domain entities and port interfaces.

No infrastructure dependencies allowed in this layer.
"""

from .entities import (
    ActivationMode,
    Application,
    CustomHeader,
    Device,
    DeviceClass,
    Encoding,
    Gateway,
    HardwareProfile,
    HttpPushOutput,
    KerlinkHttpOutput,
    KerlinkMqttOutput,
    KerlinkWebsocketOutput,
    Location,
    LorawanVersion,
    Network,
    Output,
    OutputType,
    RemoteResource,
    SyncResult,
    Verbosity,
)
from .ports import INetworkServerAPI, ISourceReader

__all__ = [
    # Enums
    "ActivationMode",
    "DeviceClass",
    "Encoding",
    "LorawanVersion",
    "OutputType",
    "Verbosity",
    # Application Entities
    "Application",
    "CustomHeader",
    "Device",
    "HttpPushOutput",
    "KerlinkHttpOutput",
    "KerlinkMqttOutput",
    "KerlinkWebsocketOutput",
    "Output",
    # Network Entities
    "Gateway",
    "HardwareProfile",
    "Location",
    "Network",
    # Destination / Results
    "RemoteResource",
    "SyncResult",
    # Ports
    "INetworkServerAPI",
    "ISourceReader",
]
