"""
Stock list API endpoints.

Provides endpoints for managing the list of tracked stocks.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from typing import List

from ..config import AppConfig, get_config
from ..storage.models import APIResponse, Stock, StockCreate
from ..storage.store import StockStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=List[Stock])
async def get_stocks(config: AppConfig = Depends(get_config)):
    """Get all tracked stocks."""
    return StockStore(config.stocks_path).load()


@router.post("", response_model=Stock)
async def add_stock(request: StockCreate, config: AppConfig = Depends(get_config)):
    """Add a stock to the tracked list."""
    store = StockStore(config.stocks_path)
    stock = Stock(code=request.code, name=(request.name or "").strip() or request.code)

    try:
        return store.add(stock)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{code}", response_model=APIResponse)
async def remove_stock(code: str, config: AppConfig = Depends(get_config)):
    """Remove a stock from the tracked list."""
    code = code.strip().upper()

    if not StockStore(config.stocks_path).remove(code):
        raise HTTPException(status_code=404, detail=f"{code} is not in the stock list")

    return APIResponse(success=True, message=f"{code} removed from stock list")
