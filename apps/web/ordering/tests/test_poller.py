"""Tests for StatusPoller."""

import asyncio

import pytest
from tableside_schemas import OrderStatus, StatusReport

from apps.web.ordering.exceptions import RemoteError
from apps.web.ordering.poller import StatusPoller

INTERVAL = 0.01


def _report(order_id: str = "ORD-1", served: bool = False, paid: bool = False):
    return StatusReport(
        order_id=order_id,
        status=OrderStatus(is_served=served, is_paid=paid),
    )


class ScriptedFetch:
    """Returns the scripted reports in order, repeating the last one."""

    def __init__(self, *reports: StatusReport | Exception) -> None:
        self.reports = list(reports)
        self.calls: list[str] = []

    async def __call__(self, order_id: str) -> StatusReport:
        self.calls.append(order_id)
        index = min(len(self.calls), len(self.reports)) - 1
        result = self.reports[index]
        if isinstance(result, Exception):
            raise result
        return result


class TestStatusPoller:
    """Tests for polling cadence and termination."""

    @pytest.mark.asyncio
    async def test_no_checks_after_paid(self):
        fetch = ScriptedFetch(_report(), _report(served=True), _report(paid=True))
        poller = StatusPoller(fetch)
        seen: list[StatusReport] = []

        poller.start("ORD-1", seen.append, INTERVAL)
        await asyncio.wait_for(poller.wait(), timeout=2)
        await asyncio.sleep(INTERVAL * 10)

        assert len(fetch.calls) == 3
        assert [r.status.is_paid for r in seen] == [False, False, True]
        assert poller.checks == 3
        assert not poller.is_running

    @pytest.mark.asyncio
    async def test_first_check_is_immediate(self):
        fetch = ScriptedFetch(_report(paid=True))
        poller = StatusPoller(fetch)

        poller.start("ORD-1", lambda report: None, 60)
        await asyncio.wait_for(poller.wait(), timeout=1)

        assert fetch.calls == ["ORD-1"]

    @pytest.mark.asyncio
    async def test_served_slows_down(self):
        fetch = ScriptedFetch(_report(served=True))
        poller = StatusPoller(fetch)

        poller.start("ORD-1", lambda report: None, 0.05)
        await asyncio.sleep(0.3)
        poller.stop()
        await poller.wait()

        # Served cadence is 0.2s, so only the first check and one more fit
        assert len(fetch.calls) <= 3

    @pytest.mark.asyncio
    async def test_unserved_keeps_base_interval(self):
        fetch = ScriptedFetch(_report())
        poller = StatusPoller(fetch)

        poller.start("ORD-1", lambda report: None, 0.02)
        await asyncio.sleep(0.3)
        poller.stop()
        await poller.wait()

        assert len(fetch.calls) >= 5

    @pytest.mark.asyncio
    async def test_failed_fetch_stops_polling(self):
        fetch = ScriptedFetch(_report(), RemoteError("backend down"))
        poller = StatusPoller(fetch)
        seen: list[StatusReport] = []

        poller.start("ORD-1", seen.append, INTERVAL)
        await asyncio.wait_for(poller.wait(), timeout=1)

        assert len(fetch.calls) == 2
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_stop_handle(self):
        fetch = ScriptedFetch(_report())
        poller = StatusPoller(fetch)

        stop = poller.start("ORD-1", lambda report: None, INTERVAL)
        await asyncio.sleep(INTERVAL * 3)
        stop()
        await poller.wait()
        calls = len(fetch.calls)
        await asyncio.sleep(INTERVAL * 5)

        assert len(fetch.calls) == calls
        stop()  # harmless twice

    @pytest.mark.asyncio
    async def test_restart_cancels_previous_cycle(self):
        fetch = ScriptedFetch(_report())
        poller = StatusPoller(fetch)

        poller.start("ORD-1", lambda report: None, INTERVAL)
        await asyncio.sleep(INTERVAL * 2)
        poller.start("ORD-2", lambda report: None, INTERVAL)
        await asyncio.sleep(INTERVAL * 2)
        switched_at = fetch.calls.index("ORD-2")
        await asyncio.sleep(INTERVAL * 5)
        poller.stop()
        await poller.wait()

        assert "ORD-1" not in fetch.calls[switched_at + 1 :]

    @pytest.mark.asyncio
    async def test_result_after_stop_is_not_delivered(self):
        release = asyncio.Event()

        async def slow_fetch(order_id: str) -> StatusReport:
            await release.wait()
            return _report(order_id)

        poller = StatusPoller(slow_fetch)
        seen: list[StatusReport] = []

        poller.start("ORD-1", seen.append, INTERVAL)
        await asyncio.sleep(0)
        poller.stop()
        release.set()
        await poller.wait()

        assert seen == []

    @pytest.mark.asyncio
    async def test_async_callback_and_callback_errors(self):
        fetch = ScriptedFetch(_report(), _report(paid=True))
        poller = StatusPoller(fetch)
        seen: list[StatusReport] = []

        async def on_update(report: StatusReport) -> None:
            seen.append(report)
            if not report.status.is_paid:
                raise RuntimeError("render failed")

        poller.start("ORD-1", on_update, INTERVAL)
        await asyncio.wait_for(poller.wait(), timeout=1)

        # A failing callback does not stop the cycle
        assert len(seen) == 2

    def test_interval_must_be_positive(self):
        poller = StatusPoller(ScriptedFetch(_report()))
        with pytest.raises(ValueError):
            poller.start("ORD-1", lambda report: None, 0)


class TestControllerPolling:
    """Polling through the lifecycle controller."""

    @pytest.mark.asyncio
    async def test_polling_collapses_session_when_paid(self, controller, backend):
        controller.cart.add_item(await backend.get_dish("D1"))
        order = await controller.place_order("5", "C1")
        seen: list[StatusReport] = []

        controller.start_polling(seen.append, INTERVAL)
        await asyncio.sleep(INTERVAL * 3)
        backend.mark_served(order.order_id)
        await asyncio.sleep(INTERVAL * 3)
        backend.mark_paid(order.order_id)
        await asyncio.wait_for(controller.poller.wait(), timeout=2)

        assert seen[-1].status.is_paid
        assert controller.order_id is None

    @pytest.mark.asyncio
    async def test_payment_stops_polling(self, controller, backend):
        controller.cart.add_item(await backend.get_dish("D1"))
        order = await controller.place_order("5", "C1")
        backend.mark_served(order.order_id)

        controller.start_polling(lambda report: None, 60)
        await asyncio.sleep(0.01)
        await controller.process_payment()
        await asyncio.wait_for(controller.poller.wait(), timeout=1)

        assert not controller.poller.is_running
