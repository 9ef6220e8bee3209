"""
File-backed stores.

Provides access to the tracked stock list, the per-stock screenshots and the
analysis results document.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .models import AnalysisResults, RunSummary, Stock, StockList

logger = logging.getLogger(__name__)


class ScreenshotNotFoundError(FileNotFoundError):
    """No screenshot has been captured for a stock."""


def _write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


# ===========================================
# Stock Store
# ===========================================

class StockStore:
    """The list of tracked stocks, kept in stocks.json."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[Stock]:
        """Load all tracked stocks (empty list if the file does not exist)."""
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return StockList.model_validate(data).stocks

    def save(self, stocks: Iterable[Stock]) -> None:
        _write_json(self.path, StockList(stocks=list(stocks)).model_dump())

    def get(self, code: str) -> Optional[Stock]:
        code = code.strip().upper()
        return next((s for s in self.load() if s.code == code), None)

    def add(self, stock: Stock) -> Stock:
        """Append a stock; raises ValueError if the code is already tracked."""
        stocks = self.load()
        if any(s.code == stock.code for s in stocks):
            raise ValueError(f"{stock.code} is already in the stock list")
        stocks.append(stock)
        self.save(stocks)
        logger.info(f"Added {stock.name} ({stock.code}) to stock list")
        return stock

    def remove(self, code: str) -> bool:
        """Remove a stock by code; returns False if it was not tracked."""
        code = code.strip().upper()
        stocks = self.load()
        remaining = [s for s in stocks if s.code != code]
        if len(remaining) == len(stocks):
            return False
        self.save(remaining)
        logger.info(f"Removed {code} from stock list")
        return True


# ===========================================
# Screenshot Store
# ===========================================

class ScreenshotStore:
    """Stock detail page screenshots, one PNG per stock code."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, code: str) -> Path:
        return self.directory / f"{code}.png"

    def load(self, code: str) -> bytes:
        path = self.path_for(code)
        if not path.is_file():
            raise ScreenshotNotFoundError(f"Screenshot not found: {path}")
        return path.read_bytes()


# ===========================================
# Results Store
# ===========================================

class ResultsStore:
    """The analysis results document, plus mirrored copies for static hosting."""

    def __init__(self, path: Path, mirror_paths: Optional[Iterable[Path]] = None):
        self.path = Path(path)
        self.mirror_paths = [Path(p) for p in (mirror_paths or [])]

    def load(self) -> Optional[AnalysisResults]:
        """Read the current document; None if missing or unreadable."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return AnalysisResults.model_validate(json.load(f))
        except (ValueError, ValidationError) as e:
            logger.error(f"Failed to read results document {self.path}: {e}")
            return None

    def save(self, results: AnalysisResults) -> Path:
        payload = results.model_dump(mode="json", by_alias=True)
        for path in [self.path, *self.mirror_paths]:
            _write_json(path, payload)
        logger.info(f"Results saved to: {self.path}")
        return self.path

    @staticmethod
    def merge(existing: Optional[AnalysisResults], update: AnalysisResults) -> AnalysisResults:
        """
        Fold a partial run into an existing document.

        Records in `update` replace records with the same code; other records
        of `existing` are kept in their original order.
        """
        if existing is None:
            return update

        updated = {s.code: s for s in update.stocks}
        stocks = [updated.pop(s.code, s) for s in existing.stocks]
        stocks.extend(updated.values())

        providers = dict(existing.providers)
        providers.update({k: v for k, v in update.providers.items() if v})

        return AnalysisResults(
            last_updated=update.last_updated,
            mode=update.mode,
            providers=providers,
            summary=RunSummary(
                total=update.summary.total,
                succeeded=update.summary.succeeded,
                skipped=update.summary.skipped,
            ),
            skipped=update.skipped,
            stocks=stocks,
        )
