"""Progress synchronization for a submitted integration.

A ``ProgressPoller`` hands out one ``PollingHandle`` per viewed integration.
The handle fetches the integration's progress right away and then on a fixed
cadence while the last observed status is non-terminal. Each tick only spawns
a fetch, so a slow response can overlap the next tick; whichever response
arrives last is the one shown.

The ticker stops when a polling-terminal status arrives or when the handle is
stopped. After ``stop()`` returns, nothing touches the view again.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Set
import logging

from repo_integrator.clients import BackendError, GitHubBackendClient
from repo_integrator.core.config import Settings, get_settings
from repo_integrator.models import IntegrationProgress, IntegrationStatus, IntegrationStep, StatusColor
from repo_integrator.models.status import integration_steps, parse_status, progress_for

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
ChangeListener = Callable[["ProgressView"], None]

FETCH_FAILED_MESSAGE = "Failed to load integration status"


class ProgressView:
    """Display state for one integration's progress."""

    def __init__(self, integration_id: str, on_change: Optional[ChangeListener] = None):
        self.integration_id = integration_id
        self.progress: Optional[IntegrationProgress] = None
        self.loading = False
        self.error: Optional[str] = None
        self.on_change = on_change

    @property
    def status(self) -> Optional[IntegrationStatus]:
        return self.progress.status if self.progress else None

    @property
    def percent(self) -> int:
        return self.progress.progress if self.progress else 0

    @property
    def label(self) -> str:
        return self.status.label if self.status else ""

    @property
    def color(self) -> Optional[StatusColor]:
        return self.status.color if self.status else None

    @property
    def error_message(self) -> Optional[str]:
        """Job failure reported by the backend (not a fetch error)."""
        return self.progress.error_message if self.progress else None

    @property
    def steps(self) -> List[IntegrationStep]:
        return integration_steps(self.percent)

    @property
    def polling_terminal(self) -> bool:
        return self.status is not None and self.status.polling_terminal

    def seed(self, status: IntegrationStatus) -> None:
        """Show a status known before the first fetch (e.g. from submission)."""
        status = parse_status(status)
        self.apply(IntegrationProgress(
            integration_id=self.integration_id,
            status=status,
            progress=progress_for(status),
            current_step=status.label,
        ))

    def apply(self, progress: IntegrationProgress) -> None:
        self.progress = progress.normalized()
        self.error = None
        self._notify()

    def fail(self, message: str) -> None:
        self.error = message
        self._notify()

    def set_loading(self, loading: bool) -> None:
        if self.loading != loading:
            self.loading = loading
            self._notify()

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self)


class PollingHandle:
    """Owned polling resource for one integration.

    ``stop()`` is the teardown path: it cancels the ticker and every in-flight
    fetch synchronously, and later responses are discarded.
    """

    def __init__(
        self,
        client: GitHubBackendClient,
        view: ProgressView,
        interval: float,
        sleep: SleepFunc,
    ):
        self.client = client
        self.view = view
        self.interval = interval
        self._sleep = sleep
        self._ticker: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._cancelled: Set[asyncio.Task] = set()
        self._pending = 0
        self._stopped = False
        self.fetch_count = 0

    @property
    def integration_id(self) -> str:
        return self.view.integration_id

    @property
    def polling(self) -> bool:
        """Whether the ticker is running."""
        return self._ticker is not None and not self._ticker.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _begin(self) -> None:
        self._spawn_fetch()
        self._start_ticker()

    def _start_ticker(self) -> None:
        if not self.polling:
            self._ticker = asyncio.create_task(self._tick_loop())

    async def _tick_loop(self) -> None:
        while True:
            await self._sleep(self.interval)
            if self._stopped:
                return
            if self.view.polling_terminal:
                self._release(keep_current=True)
                return
            self._spawn_fetch()

    def _spawn_fetch(self) -> None:
        task = asyncio.create_task(self._fetch())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _fetch(self) -> None:
        self.fetch_count += 1
        self._pending += 1
        self.view.set_loading(True)
        try:
            progress = await self.client.get_integration_status(self.integration_id)
        except BackendError as e:
            if not self._stopped:
                logger.warning(f"Progress fetch failed for integration {self.integration_id}: {e}")
                self.view.fail(str(e) or FETCH_FAILED_MESSAGE)
            return
        except Exception:
            if not self._stopped:
                logger.exception(f"Unexpected error fetching progress for integration {self.integration_id}")
                self.view.fail(FETCH_FAILED_MESSAGE)
            return
        finally:
            self._pending -= 1
            if not self._stopped:
                self.view.set_loading(self._pending > 0)

        if self._stopped:
            return

        self.view.apply(progress)
        if progress.status.polling_terminal:
            logger.info(f"Integration {self.integration_id} reached {progress.status.value}; polling stopped")
            self._release(keep_current=True)

    def _release(self, keep_current: bool = False) -> None:
        """Cancel the ticker and in-flight fetches.

        With keep_current the calling task itself is left to finish.
        """
        current = asyncio.current_task() if keep_current else None
        tasks = list(self._in_flight)
        if self._ticker is not None:
            tasks.append(self._ticker)
            if self._ticker is not current:
                self._ticker = None
        for task in tasks:
            if task is not current and not task.done():
                task.cancel()
                self._cancelled.add(task)
                task.add_done_callback(self._cancelled.discard)

    async def refresh(self) -> Optional[IntegrationProgress]:
        """Fetch once now; resume polling if the status is non-terminal."""
        if self._stopped:
            raise RuntimeError("Polling handle has been stopped")
        await self._fetch()
        if not self._stopped and not self.view.polling_terminal:
            self._start_ticker()
        return self.view.progress

    def stop(self) -> None:
        """Tear down: cancel the timer and drop in-flight results."""
        if self._stopped:
            return
        self._stopped = True
        self._release()
        logger.debug(f"Stopped polling integration {self.integration_id}")

    async def wait_closed(self) -> None:
        """Wait for cancelled tasks to finish unwinding."""
        tasks = list(self._in_flight | self._cancelled)
        if self._ticker is not None:
            tasks.append(self._ticker)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        await self.wait_closed()


class ProgressPoller:
    """Starts progress polling for integrations."""

    def __init__(
        self,
        client: GitHubBackendClient,
        settings: Optional[Settings] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.interval = self.settings.poll_interval_seconds
        self._sleep = sleep

    def start(
        self,
        integration_id: str,
        view: Optional[ProgressView] = None,
        on_change: Optional[ChangeListener] = None,
    ) -> PollingHandle:
        """Fetch progress now and keep polling until terminal or stopped."""
        view = view or ProgressView(integration_id, on_change=on_change)
        handle = PollingHandle(self.client, view, self.interval, self._sleep)
        handle._begin()
        logger.debug(f"Started polling integration {integration_id} every {self.interval}s")
        return handle
