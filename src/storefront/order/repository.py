"""Repository for the Order aggregate."""

from dataclasses import dataclass, field
from datetime import datetime

from storefront.domain import storefront
from storefront.order.order import Order
from storefront.pricing.engine import to_cents
from storefront.shared.clock import as_utc

_BATCH_SIZE = 100


@dataclass
class OrderPage:
    items: list[Order] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


@dataclass
class StatusStats:
    status: str
    count: int = 0
    total_revenue: float = 0.0

    @property
    def avg_order_value(self) -> float:
        return to_cents(self.total_revenue / self.count) if self.count else 0.0


@dataclass
class OrderStats:
    by_status: list[StatusStats] = field(default_factory=list)

    @property
    def total_orders(self) -> int:
        return sum(s.count for s in self.by_status)

    @property
    def total_revenue(self) -> float:
        return to_cents(sum(s.total_revenue for s in self.by_status))


@storefront.repository(part_of=Order)
class OrderRepository:
    def find_by_order_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def for_customer(self, customer_id, status=None, page: int = 1, limit: int = 10) -> OrderPage:
        """A customer's orders, newest first."""
        return self.search(status=status, customer_id=customer_id, page=page, limit=limit)

    def search(self, status=None, customer_id=None, order_number=None, page: int = 1, limit: int = 10) -> OrderPage:
        """Orders newest first. ``order_number`` matches any part of the number, ignoring case."""
        filters = {}
        if status:
            filters["status"] = status
        if customer_id:
            filters["customer_id"] = str(customer_id)
        if order_number:
            filters["order_number__icontains"] = order_number

        page = max(page, 1)
        query = self._dao.query
        if filters:
            query = query.filter(**filters)
        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return OrderPage(items=list(results.items), total=results.total, page=page, limit=limit)

    def stats(self, start: datetime | None = None, end: datetime | None = None) -> OrderStats:
        """Order count, revenue and average order value per status, for orders placed in ``[start, end]``."""
        start, end = as_utc(start), as_utc(end)
        grouped: dict[str, StatusStats] = {}
        for order in self._every():
            placed_at = as_utc(order.created_at)
            if (start and placed_at < start) or (end and placed_at > end):
                continue
            entry = grouped.setdefault(order.status, StatusStats(status=order.status))
            entry.count += 1
            entry.total_revenue = to_cents(entry.total_revenue + (order.total or 0.0))
        return OrderStats(by_status=sorted(grouped.values(), key=lambda s: s.status))

    def _every(self):
        query = self._dao.query.order_by("created_at")
        offset = 0
        while True:
            results = query.offset(offset).limit(_BATCH_SIZE).all()
            yield from results.items
            offset += _BATCH_SIZE
            if offset >= results.total:
                return
