"""Order status poller - watches an order until it is paid."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from tableside_schemas import StatusReport

from apps.web.ordering.exceptions import OrderingError

logger = logging.getLogger(__name__)

StatusFetcher = Callable[[str], Awaitable[StatusReport]]
UpdateCallback = Callable[[StatusReport], Any]


class _PollCycle:
    """One run of polling for one order. Stopping it is final."""

    def __init__(self, order_id: str, on_update: UpdateCallback) -> None:
        self.order_id = order_id
        self.on_update = on_update
        self.checks = 0
        self._stopped = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def stop(self) -> None:
        self._stopped.set()

    async def sleep(self, seconds: float) -> None:
        """Wait for the next tick, waking early if stopped."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except TimeoutError:
            pass


class StatusPoller:
    """
    Periodically fetches order status and reports each result.

    - The first check runs as soon as the cycle is scheduled.
    - While the order is being prepared, checks run every base_interval.
    - Once served (but unpaid), checks slow to SERVED_SLOWDOWN x base_interval.
    - A paid result ends the cycle; so does a failed fetch.
    - Starting a new cycle stops the previous one.

    Stopping is cooperative: an in-flight fetch is allowed to finish but its
    result is not delivered.
    """

    SERVED_SLOWDOWN = 4

    def __init__(self, fetch_status: StatusFetcher) -> None:
        self._fetch_status = fetch_status
        self._cycle: _PollCycle | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def checks(self) -> int:
        """Number of results delivered by the current (or last) cycle."""
        return self._cycle.checks if self._cycle else 0

    def start(
        self,
        order_id: str,
        on_update: UpdateCallback,
        base_interval: float,
    ) -> Callable[[], None]:
        """
        Begin polling order_id, replacing any active cycle.

        Must be called from a running event loop.

        Args:
            order_id: Order to watch.
            on_update: Called with every StatusReport; may be a coroutine
                function.
            base_interval: Seconds between checks while unserved.

        Returns:
            A stop() handle. Calling it more than once, or after the cycle
            ended on its own, is harmless.
        """
        if base_interval <= 0:
            raise ValueError("base_interval must be positive")

        self.stop()

        cycle = _PollCycle(order_id, on_update)
        self._cycle = cycle
        self._task = asyncio.get_running_loop().create_task(
            self._run(cycle, base_interval),
            name=f"order-status-poller:{order_id}",
        )
        logger.info(
            "Polling order %s every %.1fs", order_id, base_interval
        )
        return cycle.stop

    def stop(self) -> None:
        """Stop the active cycle, if any."""
        if self._cycle is not None:
            self._cycle.stop()

    async def wait(self) -> None:
        """Wait until the active cycle has finished."""
        if self._task is not None:
            await self._task

    async def _run(self, cycle: _PollCycle, base_interval: float) -> None:
        interval = base_interval

        while not cycle.stopped:
            try:
                report = await self._fetch_status(cycle.order_id)
            except OrderingError as e:
                logger.warning(
                    "Status check for order %s failed, polling stopped: %s",
                    cycle.order_id,
                    e,
                )
                cycle.stop()
                break

            if cycle.stopped:
                break

            cycle.checks += 1
            await self._deliver(cycle, report)

            if report.status.is_paid:
                logger.info("Order %s paid, polling stopped", cycle.order_id)
                cycle.stop()
                break

            if report.status.is_served:
                slower = base_interval * self.SERVED_SLOWDOWN
                if interval != slower:
                    logger.info(
                        "Order %s served, polling every %.1fs", cycle.order_id, slower
                    )
                interval = slower
            else:
                interval = base_interval

            await cycle.sleep(interval)

    async def _deliver(self, cycle: _PollCycle, report: StatusReport) -> None:
        try:
            result = cycle.on_update(report)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Status callback for order %s raised", cycle.order_id)
