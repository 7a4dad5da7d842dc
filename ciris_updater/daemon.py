"""
CIRISUpdater daemon.

Runs one update at a time on a fixed interval until a shutdown signal
arrives. A signal received mid-run takes effect once that run has finished.
"""

import asyncio
import logging
import signal
from typing import Optional

from ciris_updater.config.settings import CIRISUpdaterConfig
from ciris_updater.models import UpdateReport
from ciris_updater.protocols import RuntimeClient
from ciris_updater.update import check_for_multiple_instances, update

logger = logging.getLogger(__name__)


class UpdaterDaemon:
    """Schedules update runs against a runtime client."""

    def __init__(self, config: CIRISUpdaterConfig, client: RuntimeClient) -> None:
        self.config = config
        self.client = client
        self.last_report: Optional[UpdateReport] = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    def run_once(self) -> UpdateReport:
        """
        Perform a single update run.

        Raises:
            Exception: Fatal errors from the run (listing failure, dependency cycle)
        """
        params = self.config.to_update_params()
        report = update(self.client, params)
        self.last_report = report
        return report

    def startup_checks(self) -> None:
        """Retire updater instances left over from a previous self-update."""
        try:
            check_for_multiple_instances(
                self.client,
                cleanup=self.config.update.cleanup,
                timeout=self.config.update.stop_timeout,
            )
        except Exception as e:
            logger.error(f"Failed to check for other updater instances: {e}")

    async def update_loop(self) -> None:
        """Run updates until stopped. A failed run is logged and retried next interval."""
        interval = self.config.schedule.interval
        logger.info(f"Update loop started - running every {interval} seconds")

        while self._running:
            try:
                await asyncio.to_thread(self.run_once)
            except Exception as e:
                logger.error(f"Update run failed: {e}", exc_info=True)

            if not self._running:
                break
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

        logger.info("Update loop stopped")

    async def stop(self) -> None:
        """Stop after the current run."""
        logger.info("Stopping CIRISUpdater...")
        self._running = False
        self._shutdown_event.set()

    async def run(self) -> None:
        """Run the daemon until a shutdown signal."""
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Shutdown signal received")
            self._running = False
            self._shutdown_event.set()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, handle_signal)

        self._running = True
        logger.info(self.config.describe_selection())
        self.startup_checks()

        try:
            await self.update_loop()
        finally:
            await self.stop()
