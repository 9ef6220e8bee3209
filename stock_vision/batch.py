"""
Batch Analyzer.

Runs every tracked stock (or a single target stock) through the provider
orchestrator and writes the results document read by the dashboard.

Usage:
    stock-vision-analyze
    TARGET_STOCK_CODE=069500 TARGET_STOCK_NAME="KODEX 200" stock-vision-analyze
"""

import logging
import sys
import time
from datetime import datetime
from typing import Callable, List, Optional

from .agents import (
    CombinedAnalysisAgent,
    PredictionAgent,
    ReportAnalystAgent,
    VisionExtractorAgent,
    validate_extracted_data,
)
from .config import AppConfig, load_config
from .providers import AllProvidersFailedError, CapabilityClass, ProviderOrchestrator, ProviderRegistry, build_registry
from .reports.generator import ReportGenerator
from .storage.models import AnalysisResults, PhaseProviders, RunSummary, SkippedStock, Stock, StockAnalysis
from .storage.store import ResultsStore, ScreenshotNotFoundError, ScreenshotStore, StockStore
from .utils.json_utils import ResponseParseError

logger = logging.getLogger(__name__)

# Called before each stock with (index, total, stock); returning False stops the batch
ProgressCallback = Callable[[int, int, Stock], bool]


class BatchSummary:
    """Outcome of one batch run."""

    def __init__(self):
        self.results: List[StockAnalysis] = []
        self.skipped: List[SkippedStock] = []

    @property
    def total(self) -> int:
        return len(self.results) + len(self.skipped)

    def skip(self, stock: Stock, reason: str) -> None:
        self.skipped.append(SkippedStock(code=stock.code, name=stock.name, reason=reason))


class BatchAnalyzer:
    """
    Drives each stock through OCR, report and prediction.

    Stocks are processed strictly one after another, and a fixed delay is
    inserted between consecutive remote calls to respect provider rate limits.
    """

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        screenshots: ScreenshotStore,
        mode: str = "pipeline",
        delay_seconds: float = 1.5,
        report_generator: Optional[ReportGenerator] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if mode not in ("pipeline", "combined"):
            raise ValueError(f"Unsupported analysis mode: {mode}")

        self.orchestrator = orchestrator
        self.screenshots = screenshots
        self.mode = mode
        self.delay_seconds = delay_seconds
        self.report_generator = report_generator
        self._sleep = sleep
        self._called = False

        self.extractor = VisionExtractorAgent(orchestrator)
        self.report_analyst = ReportAnalystAgent(orchestrator)
        self.prediction_agent = PredictionAgent(orchestrator)
        self.combined_agent = CombinedAnalysisAgent(orchestrator)

    def _before_call(self) -> None:
        if self._called and self.delay_seconds > 0:
            self._sleep(self.delay_seconds)
        self._called = True

    def analyze_stock(self, stock: Stock) -> StockAnalysis:
        """
        Analyze a single stock.

        Raises:
            ScreenshotNotFoundError: no screenshot for the stock
            AllProvidersFailedError: a phase found no working provider
            ResponseParseError: a phase answer could not be parsed
        """
        image = self.screenshots.load(stock.code)
        logger.info(f"[{stock.name}] Analyzing...")

        if self.mode == "combined":
            self._before_call()
            analysis = self.combined_agent.analyze(stock, image)
        else:
            self._before_call()
            data, vision = self.extractor.extract(stock, image)

            self._before_call()
            report, text = self.report_analyst.generate_report(stock, data)

            self._before_call()
            prediction, reasoning = self.prediction_agent.predict(stock, data, report)

            analysis = StockAnalysis(
                code=stock.code,
                name=stock.name,
                extracted_data=data,
                ai_report=report,
                prediction=prediction.prediction,
                prediction_detail=prediction,
                providers=PhaseProviders(
                    vision=vision.provider,
                    text=text.provider,
                    reasoning=reasoning.provider,
                ),
            )

        analysis.data_validation_warnings = validate_extracted_data(analysis.extracted_data, stock.name)

        if self.report_generator is not None:
            try:
                analysis.report_path = self.report_generator.generate_report(analysis)
            except OSError as e:
                # Continue without report file - not critical
                logger.warning(f"[{stock.name}] Failed to write report: {e}")

        return analysis

    def run(self, stocks: List[Stock], progress: Optional[ProgressCallback] = None) -> BatchSummary:
        """Analyze all stocks, skipping (never aborting on) per-stock failures."""
        logger.info(f"Analyzing {len(stocks)} stocks with multi-provider fallback ({self.mode} mode)...")
        summary = BatchSummary()

        for index, stock in enumerate(stocks):
            if progress is not None and progress(index, len(stocks), stock) is False:
                logger.info("Batch stopped before completion")
                for remaining in stocks[index:]:
                    summary.skip(remaining, "cancelled")
                break

            try:
                summary.results.append(self.analyze_stock(stock))
            except ScreenshotNotFoundError:
                logger.info(f"[{stock.name}] Screenshot not found, skipping...")
                summary.skip(stock, "screenshot not found")
            except AllProvidersFailedError as e:
                logger.error(f"[{stock.name}] Analysis failed: {e}")
                summary.skip(stock, str(e))
            except ResponseParseError as e:
                logger.error(f"[{stock.name}] Unusable response: {e}")
                summary.skip(stock, f"malformed response: {e}")
            except Exception as e:
                logger.exception(f"[{stock.name}] Unexpected error: {e}")
                summary.skip(stock, f"unexpected error: {e}")

        return summary


def select_stocks(config: AppConfig, store: StockStore) -> List[Stock]:
    """Single target stock if TARGET_STOCK_CODE is set, otherwise the whole list."""
    if config.target_stock_code:
        name = config.target_stock_name
        if not name:
            tracked = store.get(config.target_stock_code)
            name = tracked.name if tracked else config.target_stock_code
        logger.info(f"[Single Stock Mode] Targeting: {name} ({config.target_stock_code})")
        return [Stock(code=config.target_stock_code, name=name)]
    return store.load()


def run_analysis(
    config: AppConfig,
    stocks: List[Stock],
    registry: Optional[ProviderRegistry] = None,
    progress: Optional[ProgressCallback] = None,
    merge: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> AnalysisResults:
    """
    Run a batch and persist the results document.

    The document is written only if at least one stock succeeded. With
    `merge`, the new records are folded into the existing document.
    """
    registry = registry or build_registry(config)
    registry.log_status()

    analyzer = BatchAnalyzer(
        ProviderOrchestrator(registry),
        ScreenshotStore(config.screenshots_dir),
        mode=config.analysis_mode,
        delay_seconds=config.request_delay_seconds,
        report_generator=ReportGenerator(config.reports_dir),
        sleep=sleep,
    )
    summary = analyzer.run(stocks, progress=progress)

    results = AnalysisResults(
        last_updated=datetime.now(),
        mode=config.analysis_mode,
        providers=registry.current_keys(),
        summary=RunSummary(
            total=summary.total,
            succeeded=len(summary.results),
            skipped=len(summary.skipped),
        ),
        skipped=summary.skipped,
        stocks=summary.results,
    )

    logger.info("=== Analysis Complete ===")
    logger.info(f"Succeeded: {len(summary.results)}, Skipped: {len(summary.skipped)}")
    for capability, key in results.providers.items():
        provider = registry.get(CapabilityClass(capability), key) if key else None
        logger.info(f"Final {capability} provider: {provider.name if provider else 'None'}")

    if not summary.results:
        logger.error("No stock was analyzed successfully; results document left unchanged")
        return results

    store = ResultsStore(config.results_path, mirror_paths=[config.public_results_path])
    if merge:
        results = ResultsStore.merge(store.load(), results)
    store.save(results)
    return results


def main() -> int:
    """Entry point for the stock-vision-analyze command."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger.info("=== Stock Analyzer Started ===")
    logger.info(f"Timestamp: {datetime.now().isoformat()}")

    config = load_config()
    stocks = select_stocks(config, StockStore(config.stocks_path))
    if not stocks:
        logger.error(f"No stocks to analyze (checked {config.stocks_path})")
        return 1
    logger.info(f"Loaded {len(stocks)} stocks")

    results = run_analysis(config, stocks, merge=bool(config.target_stock_code))
    return 0 if results.summary.succeeded > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
