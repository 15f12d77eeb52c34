"""
Analytics service.
Pure aggregation over a snapshot of orders: period/platform filters, revenue
totals, breakdowns and time series used by the dashboard and statistics views.

Every function copies its input into a tuple before iterating, never mutates
it, and returns an empty/zero result for empty input.
"""
import calendar
import enum
from datetime import datetime, date, time, timedelta
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from app.exceptions import ValidationError
from app.models import Order, OrderSource, PaymentStatus, Platform

ZERO = Decimal('0')


class Period(str, enum.Enum):
    """Reporting window."""
    TODAY = 'today'
    WEEK = 'week'
    MONTH = 'month'
    CUSTOM = 'custom'

    @classmethod
    def parse(cls, value) -> 'Period':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(f'Unknown period: {value!r}', field='period')


class DiscountFilter(str, enum.Enum):
    ALL = 'all'
    WITH_DISCOUNT = 'with'
    WITHOUT_DISCOUNT = 'without'

    @classmethod
    def parse(cls, value) -> 'DiscountFilter':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(f'Unknown discount filter: {value!r}', field='discount')


class PlatformRevenue(NamedTuple):
    platform: Platform
    revenue: Decimal
    order_count: int


class ProductSales(NamedTuple):
    product_name: str
    quantity_sold: int
    revenue: Decimal


class DailyRevenue(NamedTuple):
    day: date
    revenue: Decimal


class HourlyRevenue(NamedTuple):
    hour: int
    revenue: Decimal
    order_count: int


class SourceShare(NamedTuple):
    source: OrderSource
    count: int
    percent: float


class PaymentTotals(NamedTuple):
    paid: Decimal
    pending: Decimal
    unset: Decimal


CustomRange = Tuple[datetime, datetime]


# --- Windows -----------------------------------------------------------------

def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def subtract_months(moment: datetime, months: int = 1) -> datetime:
    """Shift back by calendar months, clamping the day to the target month length."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period, now: datetime) -> Optional[datetime]:
    """Lower bound for the rolling periods (None for custom)."""
    period = Period.parse(period)
    if period == Period.TODAY:
        return start_of_day(now)
    if period == Period.WEEK:
        return now - timedelta(days=7)
    if period == Period.MONTH:
        return subtract_months(now, 1)
    return None


# --- Filters -----------------------------------------------------------------

def filter_by_period(orders: Iterable[Order], period, now: datetime,
                     custom_range: Optional[CustomRange] = None) -> List[Order]:
    """
    Keep orders inside a reporting window.

    - today: same local calendar day as ``now``
    - week: trailing 7 days, ``timestamp >= now - 7 days``
    - month: ``timestamp >= now - 1 calendar month``
    - custom: ``start <= timestamp <= end``; empty when start > end or no range
    """
    snapshot = tuple(orders)
    period = Period.parse(period)

    if period == Period.TODAY:
        today = now.date()
        return [o for o in snapshot if o.timestamp.date() == today]

    if period == Period.CUSTOM:
        if not custom_range:
            return []
        start, end = custom_range
        if start > end:
            return []
        return [o for o in snapshot if start <= o.timestamp <= end]

    lower = period_start(period, now)
    return [o for o in snapshot if o.timestamp >= lower]


def filter_by_platform(orders: Iterable[Order], platform_id: Optional[str] = None) -> List[Order]:
    snapshot = tuple(orders)
    if platform_id is None:
        return list(snapshot)
    return [o for o in snapshot if o.platform_id == platform_id]


def filter_by_discount(orders: Iterable[Order], discount=DiscountFilter.ALL) -> List[Order]:
    snapshot = tuple(orders)
    discount = DiscountFilter.parse(discount)
    if discount == DiscountFilter.WITH_DISCOUNT:
        return [o for o in snapshot if o.was_discounted]
    if discount == DiscountFilter.WITHOUT_DISCOUNT:
        return [o for o in snapshot if not o.was_discounted]
    return list(snapshot)


def filter_by_products(orders: Iterable[Order], product_names: Optional[Sequence[str]] = None) -> List[Order]:
    snapshot = tuple(orders)
    if not product_names:
        return list(snapshot)
    wanted = set(product_names)
    return [o for o in snapshot if o.product_name in wanted]


# --- Totals ------------------------------------------------------------------

def total_revenue(orders: Iterable[Order]) -> Decimal:
    return sum((o.total_price for o in tuple(orders)), ZERO)


def total_quantity(orders: Iterable[Order]) -> int:
    return sum(o.quantity for o in tuple(orders))


def average_order_value(orders: Iterable[Order]) -> Decimal:
    snapshot = tuple(orders)
    if not snapshot:
        return ZERO
    return total_revenue(snapshot) / len(snapshot)


def payment_totals(orders: Iterable[Order]) -> PaymentTotals:
    """Revenue split by payment status."""
    sums = {status: ZERO for status in PaymentStatus}
    for order in tuple(orders):
        sums[order.payment_status] += order.total_price
    return PaymentTotals(
        paid=sums[PaymentStatus.PAID],
        pending=sums[PaymentStatus.PENDING],
        unset=sums[PaymentStatus.UNSET],
    )


# --- Breakdowns --------------------------------------------------------------

def platform_breakdown(orders: Iterable[Order]) -> List[PlatformRevenue]:
    """Revenue and order count per platform id, highest revenue first (stable)."""
    groups = {}
    for order in tuple(orders):
        entry = groups.get(order.platform_id)
        if entry is None:
            groups[order.platform_id] = [order.platform, order.total_price, 1]
        else:
            entry[1] += order.total_price
            entry[2] += 1

    rows = [PlatformRevenue(p, revenue, count) for p, revenue, count in groups.values()]
    return sorted(rows, key=lambda row: row.revenue, reverse=True)


def platform_share(breakdown: Sequence[PlatformRevenue]) -> List[float]:
    """Percentage of total revenue for each breakdown row."""
    total = sum((row.revenue for row in breakdown), ZERO)
    if total == 0:
        return [0.0 for _ in breakdown]
    return [float(row.revenue / total * 100) for row in breakdown]


def top_products(orders: Iterable[Order], limit: int = 5) -> List[ProductSales]:
    """Best sellers by quantity, grouped by product name (stable on ties)."""
    groups = {}
    for order in tuple(orders):
        entry = groups.setdefault(order.product_name, [0, ZERO])
        entry[0] += order.quantity
        entry[1] += order.total_price

    rows = [ProductSales(name, qty, revenue) for name, (qty, revenue) in groups.items()]
    rows.sort(key=lambda row: row.quantity_sold, reverse=True)
    return rows[:max(0, limit)]


def daily_series(orders: Iterable[Order]) -> List[DailyRevenue]:
    """Revenue per local calendar day, ascending. Days without orders are omitted."""
    groups = {}
    for order in tuple(orders):
        day = order.timestamp.date()
        groups[day] = groups.get(day, ZERO) + order.total_price
    return [DailyRevenue(day, groups[day]) for day in sorted(groups)]


def hourly_series(orders: Iterable[Order]) -> List[HourlyRevenue]:
    """Revenue and order count per hour of day, ascending."""
    groups = {}
    for order in tuple(orders):
        entry = groups.setdefault(order.timestamp.hour, [ZERO, 0])
        entry[0] += order.total_price
        entry[1] += 1
    return [HourlyRevenue(hour, revenue, count) for hour, (revenue, count) in sorted(groups.items())]


def best_hour(orders: Iterable[Order]) -> Optional[int]:
    best = None
    for row in hourly_series(orders):
        if best is None or row.revenue > best.revenue:
            best = row
    return best.hour if best else None


def order_source_breakdown(orders: Iterable[Order]) -> List[SourceShare]:
    """Order count and share per order source present in the data."""
    snapshot = tuple(orders)
    counts = {}
    for order in snapshot:
        source = order.order_source
        counts[source] = counts.get(source, 0) + 1

    total = len(snapshot)
    rows = [
        SourceShare(source, count, (count / total * 100) if total else 0.0)
        for source, count in counts.items()
    ]
    return sorted(rows, key=lambda row: row.count, reverse=True)


# --- Time-window summaries ---------------------------------------------------

def today_sales(orders: Iterable[Order], now: datetime) -> Decimal:
    return total_revenue(filter_by_period(orders, Period.TODAY, now))


def this_week_sales(orders: Iterable[Order], now: datetime) -> Decimal:
    # Trailing 7 days, not a calendar week
    return total_revenue(filter_by_period(orders, Period.WEEK, now))


def this_month_sales(orders: Iterable[Order], now: datetime) -> Decimal:
    return total_revenue(filter_by_period(orders, Period.MONTH, now))


def best_day_this_month(orders: Iterable[Order], now: datetime) -> Optional[DailyRevenue]:
    """Highest-revenue day in the month window; earliest day wins a tie."""
    best = None
    for row in daily_series(filter_by_period(orders, Period.MONTH, now)):
        if best is None or row.revenue > best.revenue:
            best = row
    return best


# --- Period comparison -------------------------------------------------------

def previous_period_window(period, now: datetime,
                           custom_range: Optional[CustomRange] = None) -> Optional[CustomRange]:
    """Half-open window ``[start, end)`` immediately preceding the given period."""
    period = Period.parse(period)
    if period == Period.TODAY:
        today = start_of_day(now)
        return today - timedelta(days=1), today
    if period == Period.WEEK:
        return now - timedelta(days=14), now - timedelta(days=7)
    if period == Period.MONTH:
        return subtract_months(now, 2), subtract_months(now, 1)
    if not custom_range or custom_range[0] > custom_range[1]:
        return None
    start, end = custom_range
    return start - (end - start), start


def growth_rate(orders: Iterable[Order], period, now: datetime,
                custom_range: Optional[CustomRange] = None) -> float:
    """Percent revenue change against the preceding window of the same length."""
    snapshot = tuple(orders)
    current = total_revenue(filter_by_period(snapshot, period, now, custom_range))

    window = previous_period_window(period, now, custom_range)
    if window is None:
        previous = ZERO
    else:
        start, end = window
        previous = total_revenue(o for o in snapshot if start <= o.timestamp < end)

    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return float((current - previous) / previous * 100)


# --- Composite ---------------------------------------------------------------

def build_summary(orders: Iterable[Order], period, now: datetime,
                  custom_range: Optional[CustomRange] = None,
                  platform_id: Optional[str] = None,
                  discount=DiscountFilter.ALL,
                  product_names: Optional[Sequence[str]] = None,
                  top_limit: int = 5) -> dict:
    """
    Compose every dashboard metric for one filter selection.

    Returns:
        dict with totals, payment split, platform/product/source breakdowns,
        daily and hourly series, best hour and growth rate.
    """
    snapshot = tuple(orders)
    scoped = filter_by_period(snapshot, period, now, custom_range)
    scoped = filter_by_platform(scoped, platform_id)
    scoped = filter_by_discount(scoped, discount)
    scoped = filter_by_products(scoped, product_names)

    platforms = platform_breakdown(scoped)
    payments = payment_totals(scoped)

    return {
        'period': Period.parse(period).value,
        'order_count': len(scoped),
        'total_quantity': total_quantity(scoped),
        'total_revenue': total_revenue(scoped),
        'average_order_value': average_order_value(scoped),
        'paid_amount': payments.paid,
        'pending_amount': payments.pending,
        'unset_amount': payments.unset,
        'platforms': [
            {
                'platform': row.platform.to_dict(),
                'revenue': row.revenue,
                'order_count': row.order_count,
                'percentage': share,
            }
            for row, share in zip(platforms, platform_share(platforms))
        ],
        'top_products': [row._asdict() for row in top_products(scoped, top_limit)],
        'daily': [row._asdict() for row in daily_series(scoped)],
        'hourly': [row._asdict() for row in hourly_series(scoped)],
        'best_hour': best_hour(scoped),
        'order_sources': [
            {'source': row.source.value, 'count': row.count, 'percent': row.percent}
            for row in order_source_breakdown(scoped)
        ],
        'growth_rate': growth_rate(snapshot, period, now, custom_range),
    }


def build_stats(orders: Iterable[Order], now: datetime) -> dict:
    """Headline time-window figures for the statistics dashboard."""
    snapshot = tuple(orders)
    best = best_day_this_month(snapshot, now)
    return {
        'today_sales': today_sales(snapshot, now),
        'this_week_sales': this_week_sales(snapshot, now),
        'this_month_sales': this_month_sales(snapshot, now),
        'best_day_this_month': best._asdict() if best else None,
        'average_order_value': average_order_value(snapshot),
        'products_sold': total_quantity(snapshot),
    }
