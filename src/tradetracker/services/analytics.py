import csv
import io
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from typing import Any, Literal

from pydantic import BaseModel

from tradetracker.models import Category, TransactionKind, TransactionRecord

Period = Literal[
    "today",
    "yesterday",
    "this_week",
    "last_week",
    "this_month",
    "last_month",
    "last_7_days",
    "last_30_days",
    "last_90_days",
]

UNCATEGORIZED = "Uncategorized"
DEFAULT_ICON = "📦"
DEFAULT_COLOR = "#6B7280"
TOP_CATEGORY_COUNT = 5
PIE_SLICE_LIMIT = 8

_PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}


class Summary(BaseModel):
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    net_profit: float = 0.0
    profit_margin: float = 0.0
    transaction_count: int = 0


class DailyTrend(BaseModel):
    date: date
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    display_date: str = ""


class CategoryBreakdown(BaseModel):
    name: str
    icon: str
    type: TransactionKind
    amount: float = 0.0
    count: int = 0
    color: str = DEFAULT_COLOR


class TrendMetric(BaseModel):
    current: float
    previous: float
    change: float


class PeriodTrends(BaseModel):
    revenue: TrendMetric
    expenses: TrendMetric
    profit: TrendMetric


class Trends(BaseModel):
    weekly: PeriodTrends
    monthly: PeriodTrends


class Insight(BaseModel):
    type: Literal["warning", "success", "info"]
    title: str
    message: str
    icon: str
    priority: Literal["high", "medium", "low"]


class AnalyticsReport(BaseModel):
    summary: Summary
    daily_trends: list[DailyTrend]
    category_breakdown: list[CategoryBreakdown]
    top_categories: list[CategoryBreakdown]
    trends: Trends | None = None


def _today(today: date | None) -> date:
    return today or date.today()


def get_date_range(period: str, today: date | None = None) -> tuple[datetime, datetime]:
    """Resolve a named period to an inclusive (start, end) pair. Weeks start on Monday."""
    day = _today(today)

    def start_of(value: date) -> datetime:
        return datetime.combine(value, time.min)

    def end_of(value: date) -> datetime:
        return datetime.combine(value, time.max)

    if period == "yesterday":
        yesterday = day - timedelta(days=1)
        return start_of(yesterday), end_of(yesterday)

    if period in ("this_week", "last_week"):
        anchor = day if period == "this_week" else day - timedelta(days=7)
        monday = anchor - timedelta(days=anchor.weekday())
        return start_of(monday), end_of(monday + timedelta(days=6))

    if period in ("this_month", "last_month"):
        first = day.replace(day=1)
        if period == "last_month":
            first = (first - timedelta(days=1)).replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        return start_of(first), end_of(next_month - timedelta(days=1))

    spans = {"last_7_days": 6, "last_30_days": 29, "last_90_days": 89}
    if period in spans:
        return start_of(day - timedelta(days=spans[period])), end_of(day)

    return start_of(day), end_of(day)


def filter_by_period(
    transactions: Sequence[TransactionRecord],
    period: str,
    today: date | None = None,
) -> list[TransactionRecord]:
    start, end = get_date_range(period, today)
    return [tx for tx in transactions if start.date() <= tx.transaction_date <= end.date()]


def _sum_by_kind(transactions: Sequence[TransactionRecord]) -> tuple[float, float]:
    revenue = sum(tx.amount for tx in transactions if tx.type == "income")
    expenses = sum(tx.amount for tx in transactions if tx.type != "income")
    return revenue, expenses


def calculate_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def _period_trends(
    transactions: Sequence[TransactionRecord],
    current: tuple[date, date],
    previous: tuple[date, date],
) -> PeriodTrends:
    def metrics(start: date, end: date) -> tuple[float, float]:
        return _sum_by_kind([tx for tx in transactions if start <= tx.transaction_date <= end])

    cur_revenue, cur_expenses = metrics(*current)
    prev_revenue, prev_expenses = metrics(*previous)
    cur_profit = cur_revenue - cur_expenses
    prev_profit = prev_revenue - prev_expenses

    return PeriodTrends(
        revenue=TrendMetric(
            current=cur_revenue,
            previous=prev_revenue,
            change=calculate_change(cur_revenue, prev_revenue),
        ),
        expenses=TrendMetric(
            current=cur_expenses,
            previous=prev_expenses,
            change=calculate_change(cur_expenses, prev_expenses),
        ),
        profit=TrendMetric(
            current=cur_profit,
            previous=prev_profit,
            change=calculate_change(cur_profit, prev_profit),
        ),
    )


def calculate_trends(transactions: Sequence[TransactionRecord], today: date | None = None) -> Trends:
    """Compare the last 7 and 30 days with the periods right before them."""
    day = _today(today)

    def ago(days: int) -> date:
        return day - timedelta(days=days)

    return Trends(
        weekly=_period_trends(transactions, (ago(6), day), (ago(13), ago(7))),
        monthly=_period_trends(transactions, (ago(29), day), (ago(59), ago(30))),
    )


def process_transaction_data(
    transactions: Sequence[TransactionRecord],
    categories: Sequence[Category] | None = None,
    today: date | None = None,
) -> AnalyticsReport:
    if not transactions:
        return AnalyticsReport(
            summary=Summary(),
            daily_trends=[],
            category_breakdown=[],
            top_categories=[],
            trends=None,
        )

    revenue, expenses = _sum_by_kind(transactions)
    net_profit = revenue - expenses
    summary = Summary(
        total_revenue=revenue,
        total_expenses=expenses,
        net_profit=net_profit,
        profit_margin=(net_profit / revenue * 100) if revenue > 0 else 0.0,
        transaction_count=len(transactions),
    )

    daily: dict[date, DailyTrend] = {}
    for tx in transactions:
        day = daily.setdefault(
            tx.transaction_date,
            DailyTrend(date=tx.transaction_date, display_date=tx.transaction_date.strftime("%b %d")),
        )
        if tx.type == "income":
            day.revenue += tx.amount
        else:
            day.expenses += tx.amount
        day.profit = day.revenue - day.expenses
    daily_trends = sorted(daily.values(), key=lambda item: item.date)

    categories_by_id = {category.id: category for category in categories or []}
    breakdown: dict[tuple[str, str], CategoryBreakdown] = {}
    for tx in transactions:
        category = categories_by_id.get(tx.category_id) if tx.category_id else None
        name = category.name if category else UNCATEGORIZED
        entry = breakdown.get((name, tx.type))
        if entry is None:
            entry = CategoryBreakdown(
                name=name,
                icon=category.icon if category else DEFAULT_ICON,
                type=tx.type,
                color=category.color if category else DEFAULT_COLOR,
            )
            breakdown[(name, tx.type)] = entry
        entry.amount += tx.amount
        entry.count += 1
    category_breakdown = sorted(breakdown.values(), key=lambda item: item.amount, reverse=True)

    return AnalyticsReport(
        summary=summary,
        daily_trends=daily_trends,
        category_breakdown=category_breakdown,
        top_categories=category_breakdown[:TOP_CATEGORY_COUNT],
        trends=calculate_trends(transactions, today),
    )


def generate_business_insights(
    report: AnalyticsReport,
    transactions: Sequence[TransactionRecord],
    today: date | None = None,
) -> list[Insight]:
    day = _today(today)
    summary = report.summary
    insights: list[Insight] = []

    recent_cutoff = day - timedelta(days=3)
    if not any(tx.transaction_date >= recent_cutoff for tx in transactions):
        insights.append(Insight(
            type="info",
            title="No Recent Activity",
            message="You haven't recorded any transactions in the last 3 days. "
                    "Keep tracking for better insights!",
            icon="📝",
            priority="low",
        ))

    if summary.transaction_count == 0:
        return insights

    if summary.profit_margin < 10:
        insights.append(Insight(
            type="warning",
            title="Low Profit Margin",
            message=f"Your profit margin is {summary.profit_margin:.1f}%. "
                    "Consider reducing expenses or increasing prices.",
            icon="⚠️",
            priority="high",
        ))
    elif summary.profit_margin > 30:
        insights.append(Insight(
            type="success",
            title="Healthy Profit Margin",
            message=f"Excellent! Your profit margin of {summary.profit_margin:.1f}% is very healthy.",
            icon="🎉",
            priority="medium",
        ))

    if report.trends is not None:
        change = report.trends.weekly.revenue.change
        if change > 20:
            insights.append(Insight(
                type="success",
                title="Revenue Growing",
                message=f"Your weekly revenue increased by {change:.1f}%!",
                icon="📈",
                priority="medium",
            ))
        elif change < -10:
            insights.append(Insight(
                type="warning",
                title="Revenue Declining",
                message=f"Your weekly revenue decreased by {abs(change):.1f}%. "
                        "Consider marketing or new strategies.",
                icon="📉",
                priority="high",
            ))

    expense_categories = [item for item in report.category_breakdown if item.type == "expense"]
    if expense_categories and summary.total_expenses > 0:
        top = max(expense_categories, key=lambda item: item.amount)
        share = top.amount / summary.total_expenses
        if share > 0.4:
            insights.append(Insight(
                type="info",
                title="Major Expense Category",
                message=f"{top.name} represents {share * 100:.1f}% of your expenses. Monitor this closely.",
                icon=top.icon,
                priority="medium",
            ))

    # Same comparison as daily averages over a 30 day window
    if summary.total_expenses > summary.total_revenue:
        insights.append(Insight(
            type="warning",
            title="Cash Flow Alert",
            message="Your daily expenses exceed daily revenue on average. "
                    "Focus on increasing sales or reducing costs.",
            icon="💰",
            priority="high",
        ))

    return sorted(insights, key=lambda item: _PRIORITY_ORDER[item.priority], reverse=True)


def prepare_chart_data(daily_trends: Sequence[DailyTrend], series: str = "all") -> list[dict[str, Any]]:
    names = {"revenue": "Revenue", "expenses": "Expenses", "profit": "Profit"}
    rows: list[dict[str, Any]] = []
    for day in daily_trends:
        row: dict[str, Any] = {"date": day.display_date, "full_date": day.date.isoformat()}
        if series in names:
            row["value"] = getattr(day, series)
            row["name"] = names[series]
        else:
            row.update(revenue=day.revenue, expenses=day.expenses, profit=day.profit)
        rows.append(row)
    return rows


def prepare_pie_chart_data(
    breakdown: Sequence[CategoryBreakdown],
    kind: TransactionKind = "expense",
) -> list[dict[str, Any]]:
    slices = [
        {
            "name": item.name,
            "value": item.amount,
            "count": item.count,
            "icon": item.icon,
            "color": item.color or f"hsl({index * 45}, 70%, 50%)",
        }
        for index, item in enumerate(item for item in breakdown if item.type == kind)
    ]
    return slices[:PIE_SLICE_LIMIT]


def export_to_csv(rows: Sequence[dict[str, Any]]) -> str:
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=list(rows[0].keys()),
        quoting=csv.QUOTE_NONNUMERIC,
        lineterminator="\n",
        extrasaction="ignore",
    )
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def format_number(value: float) -> str:
    formatted = f"{value:,.2f}"
    return formatted.rstrip("0").rstrip(".") if "." in formatted else formatted


def format_currency(amount: float, currency: str = "KES") -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency} {format_number(abs(amount))}"


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"
