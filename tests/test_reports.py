"""Tests for the markdown report generator."""

from datetime import datetime

from stock_vision.reports.generator import ReportGenerator
from stock_vision.storage.models import ExtractedData, PhaseProviders, PredictionDetail, StockAnalysis


def _analysis(**overrides):
    fields = dict(
        code="069500",
        name="KODEX 200",
        extracted_data=ExtractedData.model_validate({
            "currentPrice": "24,772",
            "marketCap": "5210900000000",
            "investorTrend": {"foreign": "+433048"},
        }),
        ai_report="## Technical Analysis\nSideways.",
        prediction="Neutral",
        prediction_detail=PredictionDetail(prediction="Neutral", confidence="Low", target_price="25,000"),
        providers=PhaseProviders(vision="gemini", text="groq", reasoning="groq"),
        analyzed_at=datetime(2025, 3, 14, 16, 30),
    )
    fields.update(overrides)
    return StockAnalysis(**fields)


def test_generate_report_path_and_content(tmp_path):
    generator = ReportGenerator(tmp_path)

    path = generator.generate_report(_analysis())

    assert path.endswith("069500/2025-03-14_analysis.md") or path.endswith("069500\\2025-03-14_analysis.md")
    content = generator.get_report_content(path)
    assert "# KODEX 200 (069500) Analysis Report" in content
    assert "| Current Price | 24,772 |" in content
    assert "| Market Cap | 5.2조 |" in content
    assert "**Foreign:** +433,048" in content
    assert "## Technical Analysis" in content
    assert "vision=gemini, text=groq, reasoning=groq" in content


def test_warnings_section_only_when_present(tmp_path):
    generator = ReportGenerator(tmp_path)

    assert "Data Validation Warnings" not in generator.build_markdown(_analysis())
    with_warnings = generator.build_markdown(_analysis(data_validation_warnings=["High (1) < low (2) - abnormal data"]))
    assert "- High (1) < low (2) - abnormal data" in with_warnings


def test_latest_report_lookup(tmp_path):
    generator = ReportGenerator(tmp_path)
    generator.generate_report(_analysis(analyzed_at=datetime(2025, 3, 13)))
    latest = generator.generate_report(_analysis())

    assert generator.get_report_path("069500") == latest
    assert generator.get_report_path("005930") is None
    assert latest.endswith("2025-03-14_analysis.md")


def test_missing_report_content():
    generator = ReportGenerator("does-not-exist")

    assert generator.get_report_content(None) is None
    assert generator.get_report_content("does-not-exist/x.md") is None
