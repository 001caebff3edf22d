"""Migration orchestrator.

Selects the source provider from the settings and sequences one run:

    load -> clean (when requested) -> import (unless suppressed)

Per-resource failures are already contained by the use cases and only
show up in the report. Anything raised from here (configuration errors,
inconsistent source or destination listings) aborts the run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .api.client import NetworkServerClient, PaginationConfig
from .config import Settings
from .sync.adapters.chirpstack_mapper import ChirpstackMapper
from .sync.adapters.csv_reader import CsvSourceReader
from .sync.adapters.grpc_reader import GrpcSourceReader
from .sync.adapters.network_server_api import NetworkServerAPI
from .sync.domain.entities import Application, Network, SyncResult
from .sync.domain.ports import INetworkServerAPI, ISourceReader
from .sync.use_cases.clean_resources import CleanResourcesUseCase
from .sync.use_cases.import_applications import ImportApplicationsUseCase
from .sync.use_cases.import_networks import ImportNetworksUseCase

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    """Outcome of one run: what was loaded and one SyncResult per phase."""

    provider: str
    started_at: datetime
    applications: int = 0
    devices: int = 0
    networks: int = 0
    gateways: int = 0
    phases: list[SyncResult] = field(default_factory=list)
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return all(phase.success for phase in self.phases)

    @property
    def errors(self) -> int:
        return sum(phase.errors for phase in self.phases)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "loaded": {
                "applications": self.applications,
                "devices": self.devices,
                "networks": self.networks,
                "gateways": self.gateways,
            },
            "phases": [phase.to_dict() for phase in self.phases],
            "success": self.success,
            "errors": self.errors,
        }

    def summary_lines(self) -> list[str]:
        lines = [
            f"Provider: {self.provider}",
            f"Loaded: {self.applications} applications, {self.devices} devices, "
            f"{self.networks} networks, {self.gateways} gateways",
        ]
        for phase in self.phases:
            lines.append(
                f"{phase.phase}: created={phase.created} reused={phase.reused} "
                f"deleted={phase.deleted} failed={phase.failed}"
            )
        return lines


def build_source_reader(settings: Settings) -> ISourceReader:
    """gRPC reader when ChirpStack is configured, CSV reader otherwise."""
    if settings.chirpstack is not None:
        cs = settings.chirpstack
        return GrpcSourceReader(
            url=cs.url,
            api_token=cs.api_token,
            tenant_id=cs.tenant_id,
            mapper=ChirpstackMapper(region=cs.region),
            network_name=cs.network_name,
        )
    return CsvSourceReader(settings.data_dir, customer_id=settings.customer_id)


async def load_inventory(reader: ISourceReader) -> tuple[list[Application], list[Network]]:
    async with reader:
        applications = await reader.load_applications()
        networks = await reader.load_networks()
    return applications, networks


async def run_phases(
    settings: Settings,
    network_server: INetworkServerAPI,
    applications: list[Application],
    networks: list[Network],
    provider: str,
) -> list[SyncResult]:
    phases: list[SyncResult] = []

    if settings.clean:
        cleaner = CleanResourcesUseCase(
            network_server, provider=provider, max_concurrency=settings.max_concurrency
        )
        phases.append(await cleaner.clean_applications(applications))
        phases.append(await cleaner.clean_networks(networks))

    if settings.import_resources:
        phases.append(
            await ImportApplicationsUseCase(
                network_server, provider=provider, max_concurrency=settings.max_concurrency
            ).execute(applications)
        )
        phases.append(
            await ImportNetworksUseCase(
                network_server, provider=provider, max_concurrency=settings.max_concurrency
            ).execute(networks)
        )
    else:
        logger.info(f"[{provider}] Import disabled, skipping")

    return phases


async def run_migration(
    settings: Settings,
    reader: Optional[ISourceReader] = None,
    network_server: Optional[INetworkServerAPI] = None,
) -> MigrationReport:
    """Run one migration.

    Args:
        settings: Run configuration
        reader: Source reader override (built from settings otherwise)
        network_server: Destination port override; a NetworkServerClient
            session is opened for the run otherwise

    Returns:
        MigrationReport with one SyncResult per executed phase

    Raises:
        MigrationError: On configuration errors or inconsistent listings
    """
    reader = reader or build_source_reader(settings)
    provider = reader.provider
    report = MigrationReport(provider=provider, started_at=datetime.now(timezone.utc))

    logger.info(f"[{provider}] Starting migration to {settings.destination_url}")

    applications, networks = await load_inventory(reader)
    report.applications = len(applications)
    report.devices = sum(len(app.devices) for app in applications)
    report.networks = len(networks)
    report.gateways = sum(len(net.gateways) for net in networks)

    if network_server is not None:
        report.phases = await run_phases(settings, network_server, applications, networks, provider)
    else:
        async with NetworkServerClient(settings.destination_url, settings.authorization) as client:
            api = NetworkServerAPI(client, PaginationConfig(page_size=settings.page_size))
            report.phases = await run_phases(settings, api, applications, networks, provider)

    report.completed_at = datetime.now(timezone.utc)
    duration = (report.completed_at - report.started_at).total_seconds()
    logger.info(
        f"[{provider}] Migration completed in {duration:.1f}s with {report.errors} errors"
    )
    return report
