from datetime import date

from fastapi import APIRouter

from tradetracker.api.schemas import AnalyticsRequest, AnalyticsResponse
from tradetracker.services.analytics import (
    filter_by_period,
    generate_business_insights,
    process_transaction_data,
)

router = APIRouter(prefix="/api")


@router.post("/analytics", response_model=AnalyticsResponse)
async def analytics(req: AnalyticsRequest) -> AnalyticsResponse:
    today = date.today()
    transactions = req.transactions
    if req.period:
        transactions = filter_by_period(transactions, req.period, today)

    report = process_transaction_data(transactions, req.categories, today)
    return AnalyticsResponse(
        period=req.period,
        report=report,
        insights=generate_business_insights(report, transactions, today),
    )
