"""Tests for the file-backed stores."""

import json

import pytest

from stock_vision.storage.models import AnalysisResults, ExtractedData, RunSummary, SkippedStock, Stock, StockAnalysis
from stock_vision.storage.store import ResultsStore, ScreenshotNotFoundError, ScreenshotStore, StockStore


def _record(code, name, report="report"):
    return StockAnalysis(code=code, name=name, extracted_data=ExtractedData(), ai_report=report)


class TestStockStore:
    def test_missing_file_is_empty_list(self, tmp_path):
        assert StockStore(tmp_path / "stocks.json").load() == []

    def test_add_and_remove(self, tmp_path):
        store = StockStore(tmp_path / "stocks.json")

        store.add(Stock(code="069500", name="KODEX 200"))
        store.add(Stock(code="005930", name="삼성전자"))

        assert [s.code for s in store.load()] == ["069500", "005930"]
        assert store.remove("069500") is True
        assert store.remove("069500") is False
        assert [s.code for s in store.load()] == ["005930"]

    def test_duplicate_code_is_rejected(self, tmp_path):
        store = StockStore(tmp_path / "stocks.json")
        store.add(Stock(code="069500", name="KODEX 200"))

        with pytest.raises(ValueError):
            store.add(Stock(code="069500", name="KODEX 200 again"))

    def test_file_keeps_korean_text_readable(self, tmp_path):
        path = tmp_path / "stocks.json"
        StockStore(path).add(Stock(code="005930", name="삼성전자"))

        assert "삼성전자" in path.read_text(encoding="utf-8")

    def test_code_is_normalized(self):
        assert Stock(code=" kodex.ks ", name="x").code == "KODEX.KS"
        with pytest.raises(ValueError):
            Stock(code="06 95", name="x")


class TestScreenshotStore:
    def test_load_missing_screenshot(self, tmp_path):
        store = ScreenshotStore(tmp_path)

        with pytest.raises(ScreenshotNotFoundError):
            store.load("069500")

    def test_load_screenshot_bytes(self, tmp_path):
        (tmp_path / "069500.png").write_bytes(b"png")

        assert ScreenshotStore(tmp_path).load("069500") == b"png"


class TestResultsStore:
    def test_save_writes_primary_and_mirrors(self, tmp_path):
        primary = tmp_path / "data" / "analysis_results.json"
        mirror = tmp_path / "public" / "analysis_results.json"
        store = ResultsStore(primary, mirror_paths=[mirror])

        store.save(AnalysisResults(stocks=[_record("069500", "KODEX 200")]))

        assert json.loads(primary.read_text(encoding="utf-8")) == json.loads(mirror.read_text(encoding="utf-8"))
        assert store.load().stocks[0].code == "069500"

    def test_load_invalid_document(self, tmp_path):
        path = tmp_path / "analysis_results.json"
        path.write_text("{not json", encoding="utf-8")

        assert ResultsStore(path).load() is None

    def test_merge_replaces_matching_records(self):
        existing = AnalysisResults(
            providers={"vision": "gemini", "text": "groq", "reasoning": "groq"},
            stocks=[_record("069500", "KODEX 200", "old"), _record("005930", "삼성전자", "keep")],
        )
        update = AnalysisResults(
            providers={"vision": "openrouter", "text": None, "reasoning": None},
            summary=RunSummary(total=2, succeeded=2, skipped=0),
            stocks=[_record("069500", "KODEX 200", "new"), _record("360750", "TIGER 미국S&P500", "added")],
        )

        merged = ResultsStore.merge(existing, update)

        assert [(s.code, s.ai_report) for s in merged.stocks] == [
            ("069500", "new"), ("005930", "keep"), ("360750", "added"),
        ]
        assert merged.providers == {"vision": "openrouter", "text": "groq", "reasoning": "groq"}
        assert merged.summary.succeeded == 2

    def test_merge_without_existing_document(self):
        update = AnalysisResults(skipped=[SkippedStock(code="069500", name="KODEX 200", reason="cancelled")])

        assert ResultsStore.merge(None, update) is update
