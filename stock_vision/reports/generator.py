# Stock Vision - Report Generator
"""
Generate markdown analysis reports.

Reports include:
- Key price and ETF metrics read from the screenshot
- Daily chart reading and investor flows
- Prediction and outlook
- The AI analysis report
- Data validation warnings and the providers that served each phase
"""

import os
import logging
from typing import Optional

from ..formatting import format_value
from ..storage.models import StockAnalysis

logger = logging.getLogger(__name__)

PREDICTION_LABELS = {
    "Bullish": "Bullish (upside expected)",
    "Bearish": "Bearish (downside expected)",
    "Neutral": "Neutral",
}


class ReportGenerator:
    """Generate markdown analysis reports."""

    def __init__(self, reports_dir: str = "reports"):
        """Initialize report generator.

        Args:
            reports_dir: Base directory for storing reports
        """
        self.reports_dir = str(reports_dir)

    def _ensure_code_dir(self, code: str) -> str:
        """Ensure directory exists for a stock's reports."""
        code_dir = os.path.join(self.reports_dir, code.upper())
        os.makedirs(code_dir, exist_ok=True)
        return code_dir

    def generate_report(self, analysis: StockAnalysis) -> str:
        """Write the markdown report for one analysed stock.

        Returns:
            Path to the generated report file
        """
        code_dir = self._ensure_code_dir(analysis.code)
        date_str = analysis.analyzed_at.strftime("%Y-%m-%d")
        report_path = os.path.join(code_dir, f"{date_str}_analysis.md")

        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(self.build_markdown(analysis))

        logger.info(f"Report saved: {report_path}")
        return report_path

    def build_markdown(self, analysis: StockAnalysis) -> str:
        data = analysis.extracted_data
        lines = [
            f"# {analysis.name} ({analysis.code}) Analysis Report",
            "",
            f"**Generated:** {analysis.analyzed_at.strftime('%Y-%m-%d %H:%M')}",
            f"**Prediction:** {PREDICTION_LABELS.get(analysis.prediction, analysis.prediction)}",
            "",
            "---",
            "",
            "## Key Metrics",
            "",
            "| Metric | Value |",
            "|--------|-------|",
        ]

        metrics = [
            ("Current Price", data.current_price),
            ("Change", data.price_change),
            ("Change %", data.change_percent),
            ("Previous Close", data.prev_close),
            ("Open", data.open_price),
            ("High", data.high_price),
            ("Low", data.low_price),
            ("Volume", data.volume),
            ("Trading Value", data.trading_value),
            ("52-Week High", data.high_52week),
            ("52-Week Low", data.low_52week),
            ("iNAV", data.inav),
            ("NAV", data.nav),
            ("Premium/Discount", data.premium_discount),
            ("Market Cap", data.market_cap),
            ("AUM", data.aum),
            ("Expense Ratio", data.expense_ratio),
            ("Dividend Yield", data.dividend_yield),
            ("1M Return", data.return_1m),
            ("3M Return", data.return_3m),
            ("1Y Return", data.return_1y),
        ]
        for label, value in metrics:
            lines.append(f"| {label} | {format_value(value)} |")
        lines.append("")

        chart = data.chart_analysis
        if chart:
            lines.extend([
                "## Chart Reading",
                "",
                f"- **Trend:** {chart.trend or 'N/A'}",
                f"- **MA 5/20/60:** {format_value(chart.ma5)} / {format_value(chart.ma20)} / {format_value(chart.ma60)}",
                f"- **Support / Resistance:** {format_value(chart.support)} / {format_value(chart.resistance)}",
                f"- **Pattern:** {chart.pattern or 'N/A'}",
                f"- **MA Alignment:** {chart.ma_alignment or 'N/A'}",
                f"- **Signal:** {chart.signal or 'N/A'}",
                "",
            ])

        flows = data.investor_trend
        if flows:
            lines.extend([
                "## Investor Flows",
                "",
                f"- **Individual:** {format_value(flows.individual)}",
                f"- **Foreign:** {format_value(flows.foreign)}",
                f"- **Institution:** {format_value(flows.institution)}",
                "",
            ])

        detail = analysis.prediction_detail
        if detail:
            lines.extend([
                "## Prediction",
                "",
                f"- **Direction:** {detail.prediction} ({detail.confidence} confidence)",
                f"- **Target Price:** {format_value(detail.target_price)}",
                f"- **Short-term:** {detail.short_term_outlook or 'N/A'}",
                f"- **Long-term:** {detail.long_term_outlook or 'N/A'}",
                "",
            ])
            if detail.reasoning:
                lines.extend([detail.reasoning, ""])

        lines.extend(["---", "", analysis.ai_report.strip(), ""])

        if analysis.data_validation_warnings:
            lines.extend(["---", "", "## Data Validation Warnings", ""])
            lines.extend(f"- {w}" for w in analysis.data_validation_warnings)
            lines.append("")

        providers = analysis.providers
        lines.extend([
            "---",
            "",
            f"*Providers: vision={providers.vision or '-'}, text={providers.text or '-'}, "
            f"reasoning={providers.reasoning or '-'}*",
            "",
            "*This report is generated automatically and is not investment advice.*",
            "",
        ])
        return "\n".join(lines)

    def get_report_path(self, code: str) -> Optional[str]:
        """Get path to the latest report of a stock, None if there is none."""
        code_dir = os.path.join(self.reports_dir, code.upper())
        if not os.path.exists(code_dir):
            return None

        reports = [f for f in os.listdir(code_dir) if f.endswith('_analysis.md')]
        if not reports:
            return None

        reports.sort(reverse=True)
        return os.path.join(code_dir, reports[0])

    def get_report_content(self, report_path: Optional[str]) -> Optional[str]:
        """Read and return report content, None if not found."""
        if not report_path or not os.path.exists(report_path):
            return None

        try:
            with open(report_path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            logger.error(f"Failed to read report {report_path}: {e}")
            return None
