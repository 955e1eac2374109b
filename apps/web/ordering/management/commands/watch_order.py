"""
Watch an order's serving and payment status until it is paid.

Usage:
    python apps/web/manage.py watch_order ORD-1001
    python apps/web/manage.py watch_order ORD-1001 --interval 10
"""

import asyncio
import logging
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from tableside_schemas import OrderStatus, StatusReport

from apps.web.backend import get_backend
from apps.web.ordering.lifecycle import OrderLifecycleController
from apps.web.ordering.session_store import CacheSessionStore

logger = logging.getLogger(__name__)


def _describe(status: OrderStatus) -> str:
    if status.is_paid:
        return "paid"
    if status.is_served:
        return "served, awaiting payment"
    return "being prepared"


class Command(BaseCommand):
    help = "Poll an order's status and print each change until it is paid"

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument("order_id", help="Order to watch")
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between checks while unserved "
            "(default: ORDER_POLL_INTERVAL)",
        )

    def handle(self, *_args: Any, **options: Any) -> None:
        order_id = options["order_id"]
        interval = options["interval"]
        if interval is None:
            interval = settings.ORDER_POLL_INTERVAL

        if interval <= 0:
            raise CommandError("--interval must be positive")

        self.stdout.write(f"Watching order {order_id} (every {interval}s)...")
        last = asyncio.run(self.watch(order_id, interval))

        if last is None or not last.status.is_paid:
            raise CommandError(
                f"Stopped watching order {order_id}: status check failed"
            )

        self.stdout.write(self.style.SUCCESS(f"Order {order_id} is paid"))

    async def watch(self, order_id: str, interval: float) -> StatusReport | None:
        """Poll until paid or a failed check; return the last report seen."""
        backend = get_backend()
        controller = OrderLifecycleController(
            backend, CacheSessionStore(f"watch:{order_id}")
        )
        last: StatusReport | None = None

        def on_update(report: StatusReport) -> None:
            nonlocal last
            previous = last.status if last else None
            last = report
            if report.status != previous:
                self.stdout.write(
                    f"{order_id}: {_describe(report.status)} "
                    f"(amount {report.amount})"
                )

        try:
            controller.start_polling(on_update, interval, order_id=order_id)
            await controller.poller.wait()
        finally:
            controller.stop_polling()
            await backend.close()

        logger.info(
            "Watched order %s for %d check(s)", order_id, controller.poller.checks
        )
        return last
