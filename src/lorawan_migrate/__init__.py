"""LoRaWAN migration tool.

Moves applications, devices, outputs, networks and gateways from a
ChirpStack v4 server or a Kerlink WMC CSV export to a LORIOT network server.

Packages:
    api/    - Destination HTTP client, exception hierarchy, concurrency helpers
    sync/   - Domain entities, ports, source/destination adapters, use cases
"""

__version__ = "1.2.0"
