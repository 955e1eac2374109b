"""Tests for the watch_order management command."""

from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError

import pytest

from apps.web.backend import MockBackend
from apps.web.ordering.tests.factories import OrderFactory


class KitchenBackend(MockBackend):
    """Serves the order on the second check and is paid on the third."""

    async def get_order(self, order_id):
        checks = sum(1 for c in self.calls if c.startswith("get_order")) + 1
        if checks == 2:
            self.mark_served(order_id)
        elif checks == 3:
            self.mark_paid(order_id)
        return await super().get_order(order_id)


class SlowKitchenBackend(MockBackend):
    """Unserved for two checks, then served and paid together on the third."""

    async def get_order(self, order_id):
        checks = sum(1 for c in self.calls if c.startswith("get_order")) + 1
        if checks == 3:
            self.mark_served(order_id)
            self.mark_paid(order_id)
        return await super().get_order(order_id)


def _watch(backend, *args):
    out = StringIO()
    with patch(
        "apps.web.ordering.management.commands.watch_order.get_backend",
        return_value=backend,
    ):
        call_command("watch_order", *args, stdout=out)
    return out.getvalue()


class TestWatchOrderCommand:
    """Tests for watch_order."""

    def test_prints_each_change_until_paid(self):
        backend = KitchenBackend()
        backend.add_order(OrderFactory(order_id="ORD-1"))

        output = _watch(backend, "ORD-1", "--interval", "0.01")

        assert "ORD-1: being prepared" in output
        assert "ORD-1: served, awaiting payment" in output
        assert "ORD-1: paid" in output
        assert "Order ORD-1 is paid" in output
        assert sum(1 for c in backend.calls if c.startswith("get_order")) == 3

    def test_unchanged_status_is_printed_once(self):
        backend = SlowKitchenBackend()
        backend.add_order(OrderFactory(order_id="ORD-4"))

        output = _watch(backend, "ORD-4", "--interval", "0.01")

        assert output.count("ORD-4: being prepared") == 1
        assert "ORD-4: paid" in output
        assert sum(1 for c in backend.calls if c.startswith("get_order")) == 3

    def test_already_paid(self):
        backend = MockBackend()
        backend.add_order(OrderFactory(order_id="ORD-2", is_served=True, is_paid=True))

        output = _watch(backend, "ORD-2", "--interval", "0.01")

        assert "Order ORD-2 is paid" in output
        assert backend.calls == ["get_order ORD-2"]

    def test_unknown_order_fails(self):
        with pytest.raises(CommandError, match="status check failed"):
            _watch(MockBackend(), "ORD-404", "--interval", "0.01")

    def test_backend_failure_fails(self):
        backend = MockBackend(fail_status=True)
        backend.add_order(OrderFactory(order_id="ORD-3"))

        with pytest.raises(CommandError):
            _watch(backend, "ORD-3", "--interval", "0.01")

    def test_interval_must_be_positive(self):
        with pytest.raises(CommandError, match="must be positive"):
            _watch(MockBackend(), "ORD-1", "--interval", "-1")
