"""CSV source reader for Kerlink WMC exports.

Reads up to five export files from a data directory and hands the coerced
rows to KerlinkMapper:

    devices.csv             one row per end device (clusterId links to a cluster)
    clusters.csv            clusters; derived from devices.csv when absent
    pushConfigurations.csv  push configurations referenced by clusters
    fleets.csv              gateway fleets; derived from gateways.csv when absent
    gateways.csv            one row per gateway (fleetId links to a fleet)

A missing file is read as zero rows with a warning so that partial exports
(e.g. devices without gateways) still migrate.
"""

import asyncio
import csv
import json
import logging
from pathlib import Path
from typing import Any, Optional

from ...api.exceptions import SourceError
from ..domain.entities import Application, Network
from ..domain.ports import ISourceReader
from .kerlink_mapper import KerlinkMapper

logger = logging.getLogger(__name__)

DEVICES_FILE = "devices.csv"
CLUSTERS_FILE = "clusters.csv"
PUSH_CONFIGURATIONS_FILE = "pushConfigurations.csv"
FLEETS_FILE = "fleets.csv"
GATEWAYS_FILE = "gateways.csv"

# Hex identifiers and keys: leading zeros matter, never numeric-coerced.
HEX_FIELDS = frozenset({
    "devEui",
    "dev_addr",
    "NwkSKey",
    "AppSKey",
    "appEui",
    "appKey",
    "fNwkSIntKey",
    "sNwkSIntKey",
    "eui",
    "eth0MAC",
})

# Free text that only looks numeric by accident.
TEXT_FIELDS = frozenset({
    "name",
    "description",
    "clusterName",
    "fleetName",
    "url",
    "user",
    "password",
    "mqttHost",
    "mqttClientId",
    "mqttUser",
    "mqttPassword",
    "macVersion",
    "httpDataUpRoute",
    "httpDataDownEventRoute",
    "mqttDataUpTopic",
    "mqttDataDownEventTopic",
    "mqttWillTopic",
    "mqttWillPayload",
})

# Columns holding embedded JSON documents.
JSON_FIELDS = frozenset({"pushConfiguration", "headers", "customer"})

UNKNOWN_CUSTOMER = {"name": "Unknown customer", "id": 0}


# ============================================
# Row Coercion
# ============================================


def coerce_value(column: str, value: Optional[str]) -> Any:
    """Coerce one string-typed CSV cell.

    Empty strings and "null" become None, "true"/"false" become booleans,
    numeric strings become int or float, JSON columns are parsed. Hex and
    free-text columns stay strings.
    """
    if value is None:
        return None

    text = value.strip()
    if text == "" or text.lower() == "null":
        return None

    if column in HEX_FIELDS or column in TEXT_FIELDS:
        return text

    if column in JSON_FIELDS:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise SourceError(
                f"Column {column} is not valid JSON: {e}",
                provider="kerlink",
                cause=e,
            )

    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def coerce_row(row: dict[str, Optional[str]]) -> dict[str, Any]:
    return {
        column: coerce_value(column, value)
        for column, value in row.items()
        if column is not None
    }


# ============================================
# Reader
# ============================================


class CsvSourceReader(ISourceReader):
    """Loads a Kerlink WMC export directory.

    Example:
        reader = CsvSourceReader(Path("./data"), customer_id=42)
        applications = await reader.load_applications()
        networks = await reader.load_networks()
    """

    provider = "kerlink"

    def __init__(
        self,
        data_dir: Path | str,
        customer_id: Optional[int] = None,
        mapper: Optional[KerlinkMapper] = None,
    ):
        self.data_dir = Path(data_dir)
        self.customer_id = customer_id
        self.mapper = mapper or KerlinkMapper()

    def read_rows(self, filename: str) -> list[dict[str, Any]]:
        """Read and coerce every row of ``filename``; [] if the file is missing.

        Raises:
            SourceError: If the file is not UTF-8 or holds malformed JSON
        """
        path = self.data_dir / filename
        if not path.is_file():
            logger.warning(f"[{self.provider}] {path} not found, assuming 0 records")
            return []

        logger.info(f"[{self.provider}] Loading {path} ...")
        try:
            with path.open(newline="", encoding="utf-8-sig") as f:
                rows = [coerce_row(row) for row in csv.DictReader(f)]
        except UnicodeDecodeError as e:
            raise SourceError(
                f"{filename} is not valid UTF-8: {e}",
                provider=self.provider,
                details={"file": str(path)},
                cause=e,
            )
        logger.info(f"[{self.provider}] Found {len(rows)} records in {filename}")
        return rows

    async def _read(self, filename: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self.read_rows, filename)

    # ----------------------------------------
    # Applications
    # ----------------------------------------

    async def load_applications(self) -> list[Application]:
        devices = await self._read(DEVICES_FILE)
        push_configurations = await self._read(PUSH_CONFIGURATIONS_FILE)
        clusters = await self._read(CLUSTERS_FILE)

        if not clusters:
            clusters = self.derive_clusters(devices)
            if clusters:
                logger.info(f"[{self.provider}] Derived {len(clusters)} clusters from devices")

        applications = []
        for cluster in clusters:
            cluster_id = cluster.get("id")
            reference = cluster.get("pushConfiguration") or {}
            push_id = reference.get("id") if isinstance(reference, dict) else None

            applications.append(
                self.mapper.map_cluster(
                    cluster,
                    devices=[d for d in devices if d.get("clusterId") == cluster_id],
                    push_configurations=[
                        p for p in push_configurations
                        if push_id is not None and p.get("id") == push_id
                    ],
                )
            )

        logger.info(
            f"[{self.provider}] Translated {len(applications)} applications, "
            f"{sum(len(a.devices) for a in applications)} devices, "
            f"{sum(len(a.outputs) for a in applications)} outputs"
        )
        return applications

    @staticmethod
    def derive_clusters(devices: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Build one cluster per distinct clusterId when clusters.csv is absent."""
        clusters: dict[Any, dict[str, Any]] = {}
        for device in devices:
            cluster_id = device.get("clusterId")
            if cluster_id in clusters:
                continue
            clusters[cluster_id] = {
                "id": cluster_id,
                "name": device.get("clusterName") or f"Cluster {cluster_id}",
                "hexa": True,
                "pushEnabled": False,
            }
        return list(clusters.values())

    # ----------------------------------------
    # Networks
    # ----------------------------------------

    async def load_networks(self) -> list[Network]:
        gateways = await self._read(GATEWAYS_FILE)
        fleets = await self._read(FLEETS_FILE)

        if not fleets:
            fleets = self.derive_fleets(gateways)
            if fleets:
                logger.info(f"[{self.provider}] Derived {len(fleets)} fleets from gateways")

        selected = []
        for fleet in fleets:
            customer = fleet.get("customer") or UNKNOWN_CUSTOMER
            if self.customer_id is not None and customer.get("id") != self.customer_id:
                continue
            selected.append((fleet, customer))

        if self.customer_id is not None:
            fleet_ids = {fleet.get("id") for fleet, _ in selected}
            customer_name = selected[0][1].get("name") if selected else "unknown"
            logger.info(
                f"[{self.provider}] Filtered by customer ({self.customer_id}) {customer_name}: "
                f"{sum(1 for g in gateways if g.get('fleetId') in fleet_ids)} gateways, "
                f"{len(selected)} fleets"
            )

        networks = [
            self.mapper.map_fleet(
                fleet,
                gateways=[g for g in gateways if g.get("fleetId") == fleet.get("id")],
            )
            for fleet, _ in selected
        ]

        logger.info(
            f"[{self.provider}] Translated {len(networks)} networks, "
            f"{sum(len(n.gateways) for n in networks)} gateways"
        )
        return networks

    @staticmethod
    def derive_fleets(gateways: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Build one fleet per distinct fleetId when fleets.csv is absent."""
        fleets: dict[Any, dict[str, Any]] = {}
        for gateway in gateways:
            fleet_id = gateway.get("fleetId")
            if fleet_id in fleets:
                continue
            fleets[fleet_id] = {
                "id": fleet_id,
                "name": gateway.get("fleetName") or f"Fleet {fleet_id}",
                "customer": dict(UNKNOWN_CUSTOMER),
            }
        return list(fleets.values())
