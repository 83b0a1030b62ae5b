from fastapi import HTTPException, Request

from tradetracker.manager import ParserService
from tradetracker.services.scanning import ReceiptScanPipeline


def get_service(request: Request) -> ParserService:
    service = getattr(request.app.state, "service", None)
    if not service:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return service


def get_scanner(request: Request) -> ReceiptScanPipeline:
    scanner = getattr(request.app.state, "scanner", None)
    if not scanner:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return scanner
