"""Import Applications Use Case - Pushes applications to the destination.

Workflow per application:
1. Look up the destination application by exact name
2. Reuse its id, or create it with a capacity hint (at least 1)
3. Create every output
4. For every device, delete any device with the same DevEUI (a missing
   device is fine) then create it fresh

Output and device operations are isolated: a failure is logged with the
provider, application name, resource key and transport detail, and the
next resource proceeds. A failing lookup/create skips the whole
application.
"""

import logging
from datetime import datetime, timezone

from ...api.exceptions import MigrationError, describe_error
from ...api.resilience import process_concurrent
from ..domain.entities import Application, SyncResult
from ..domain.ports import INetworkServerAPI

logger = logging.getLogger(__name__)

# Errors contained at the per-resource boundary. ValueError covers
# request bodies rejected by schema validation before they are sent.
RESOURCE_ERRORS = (MigrationError, ValueError)


class ImportApplicationsUseCase:
    """Creates or reuses applications, then their outputs and devices.

    Example:
        use_case = ImportApplicationsUseCase(
            network_server=NetworkServerAPI(client),
            provider="kerlink",
            max_concurrency=4,
        )
        result = await use_case.execute(applications)
    """

    def __init__(
        self,
        network_server: INetworkServerAPI,
        provider: str = "source",
        max_concurrency: int = 1,
    ):
        """Initialize the use case with its dependencies.

        Args:
            network_server: Port for the destination API
            provider: Source provider name used in log prefixes
            max_concurrency: Applications imported at once (1 = sequential)
        """
        self.api = network_server
        self.provider = provider
        self.max_concurrency = max_concurrency

    async def execute(self, applications: list[Application]) -> SyncResult:
        started_at = datetime.now(timezone.utc)
        result = SyncResult(phase="import_applications", started_at=started_at)

        if not applications:
            logger.info(f"[{self.provider}] No applications to import")
            return result

        logger.info(f"[{self.provider}] Importing {len(applications)} applications ...")

        partials = await process_concurrent(
            applications,
            self._import_application,
            max_concurrent=self.max_concurrency,
        )
        for partial in partials:
            result.merge(partial)

        duration = (datetime.now(timezone.utc) - started_at).total_seconds()
        logger.info(
            f"[{self.provider}] Application import completed in {duration:.2f}s: "
            f"created={result.created} reused={result.reused} failed={result.failed}"
        )
        return result

    async def _import_application(self, app: Application) -> SyncResult:
        result = SyncResult(phase="import_applications", started_at=datetime.now(timezone.utc))
        prefix = f"[{self.provider}][{app.name}]"

        try:
            app_id = await self.api.find_application_id(app.name)
            if app_id is not None:
                logger.info(f"{prefix} Reusing application {app_id}")
                result.record("reused", "application")
            else:
                app_id = await self.api.create_application(app)
                logger.info(f"{prefix} Created application {app_id}")
                result.record("created", "application")
        except RESOURCE_ERRORS as e:
            message = f"{prefix}[APP] Skipping application: {describe_error(e)}"
            logger.error(message)
            result.add_error("application", message)
            return result

        for output in app.outputs:
            key = output.name or output.output_type.value
            try:
                await self.api.create_output(app_id, output)
                result.record("created", "output")
            except RESOURCE_ERRORS as e:
                message = f"{prefix}[OUT][{key}] {describe_error(e)}"
                logger.warning(message)
                result.add_error("output", message)

        for device in app.devices:
            try:
                if await self.api.delete_device(app_id, device.dev_eui):
                    logger.debug(f"{prefix}[DEV][{device.dev_eui}] Replaced existing device")
                    result.record("deleted", "device")
                await self.api.create_device(app_id, device)
                result.record("created", "device")
            except RESOURCE_ERRORS as e:
                message = f"{prefix}[DEV][{device.dev_eui}] {describe_error(e)}"
                logger.warning(message)
                result.add_error("device", message)

        logger.info(
            f"{prefix} {result.created.get('device', 0)}/{len(app.devices)} devices, "
            f"{result.created.get('output', 0)}/{len(app.outputs)} outputs"
        )
        return result
