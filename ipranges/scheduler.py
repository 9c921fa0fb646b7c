import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable

from ipranges.dataset import parse_dataset
from ipranges.directory import RangeDirectory
from ipranges.errors import DatasetUnparsable
from ipranges.snapshot import Snapshot, build_snapshot

logger = logging.getLogger(__name__)

FetchFunc = Callable[[], Awaitable[bytes]]


class RefreshState(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"


def _build(raw: bytes) -> Snapshot:
    dataset = parse_dataset(raw)
    return build_snapshot(dataset.sync_token, dataset.records, create_date=dataset.create_date)


class RefreshScheduler:
    def __init__(
        self,
        directory: RangeDirectory,
        fetch: FetchFunc,
        interval_seconds: float,
        timeout_seconds: float,
    ):
        self.directory = directory
        self.state = RefreshState.IDLE
        self._fetch = fetch
        self._interval = interval_seconds
        self._timeout = timeout_seconds
        self._loop_task: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._stopped = False

    async def refresh(self) -> bool:
        """Run one fetch-parse-build-publish cycle. Returns True if a snapshot was published."""
        if self.state is RefreshState.FETCHING:
            logger.debug("Refresh already in flight, ignoring trigger")
            return False
        self.state = RefreshState.FETCHING
        try:
            snapshot = await self._fetch_snapshot()
        finally:
            self.state = RefreshState.IDLE

        if snapshot is None:
            return False
        if self._stopped:
            logger.info("Scheduler stopped, discarding snapshot syncToken=%s", snapshot.sync_token)
            return False
        self.directory.publish(snapshot)
        logger.info(
            "IP ranges refreshed: syncToken=%s, %d services, %d regions, %d prefixes",
            snapshot.sync_token,
            len(snapshot.services),
            len(snapshot.regions),
            snapshot.record_count,
        )
        return True

    async def _fetch_snapshot(self) -> Snapshot | None:
        try:
            raw = await asyncio.wait_for(self._fetch(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error("Fetching IP ranges timed out after %.1fs", self._timeout)
            return None
        except Exception:
            logger.exception("Failed to fetch IP ranges")
            return None
        try:
            return await asyncio.to_thread(_build, raw)
        except DatasetUnparsable as exc:
            logger.error("Fetched IP ranges document is unusable: %s", exc)
            return None
        except Exception:
            logger.exception("Failed to build IP ranges snapshot")
            return None

    def trigger(self) -> asyncio.Task | None:
        """Start a refresh in the background unless one is already running."""
        if self.state is RefreshState.FETCHING or (
            self._inflight is not None and not self._inflight.done()
        ):
            logger.debug("Refresh already in flight, skipping scheduled trigger")
            return None
        self._inflight = asyncio.create_task(self.refresh())
        return self._inflight

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.trigger()

    async def start(self) -> None:
        self._stopped = False
        await self.refresh()
        self._loop_task = asyncio.create_task(self._run())

    def stop(self) -> None:
        self._stopped = True
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None

    async def drain(self, timeout: float) -> None:
        """Wait up to `timeout` for a background refresh to finish; never cancels it."""
        task, self._inflight = self._inflight, None
        if task is None or task.done():
            return
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            logger.warning("Refresh still in flight after %.1fs at shutdown", timeout)
