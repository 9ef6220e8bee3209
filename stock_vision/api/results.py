"""
Results API endpoints.

Read-only access to the analysis results document and report files.
"""

import os
import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from ..config import AppConfig, get_config
from ..reports.generator import ReportGenerator
from ..storage.models import AnalysisResults, StockAnalysis
from ..storage.store import ResultsStore

router = APIRouter()
logger = logging.getLogger(__name__)


def load_results(config: AppConfig) -> AnalysisResults:
    """Load the results document or raise 404."""
    results = ResultsStore(config.results_path).load()
    if results is None:
        raise HTTPException(status_code=404, detail="No analysis results available yet")
    return results


def _get_stock_result(code: str, config: AppConfig) -> StockAnalysis:
    code = code.strip().upper()
    record = load_results(config).get_stock(code)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No analysis found for {code}")
    return record


def _report_content(record: StockAnalysis, config: AppConfig) -> str:
    generator = ReportGenerator(config.reports_dir)
    content = generator.get_report_content(record.report_path)
    if content is None:
        content = generator.get_report_content(generator.get_report_path(record.code))
    # Fall back to the AI report embedded in the results document
    return content or record.ai_report


@router.get("")
async def get_results(config: AppConfig = Depends(get_config)):
    """Get the full results document."""
    return load_results(config).model_dump(mode="json", by_alias=True)


@router.get("/{code}")
async def get_stock_result(code: str, config: AppConfig = Depends(get_config)):
    """Get the latest analysis record for one stock."""
    return _get_stock_result(code, config).model_dump(mode="json", by_alias=True)


@router.get("/{code}/report")
async def get_stock_report(code: str, config: AppConfig = Depends(get_config)):
    """Get the markdown report for a stock."""
    record = _get_stock_result(code, config)
    return PlainTextResponse(content=_report_content(record, config), media_type="text/markdown")


@router.get("/{code}/report/download")
async def download_stock_report(code: str, config: AppConfig = Depends(get_config)):
    """Download the markdown report for a stock as a file."""
    record = _get_stock_result(code, config)
    content = _report_content(record, config)

    filename = os.path.basename(record.report_path) if record.report_path else "analysis.md"

    return PlainTextResponse(
        content=content,
        media_type="text/markdown",
        headers={
            "Content-Disposition": f"attachment; filename={record.code}_{filename}"
        }
    )
