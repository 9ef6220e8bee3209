# Stock Vision - Main Package
"""
Stock Vision: screenshot-driven stock/ETF analysis with multi-provider LLM fallback.

This package provides:
- Provider Orchestrator: tries interchangeable LLM providers with failover
- Agents: OCR extraction, narrative report and prediction
- Batch Driver: analyzes every tracked stock and writes a results document
- Web Dashboard: FastAPI-based read-only display of the results
"""

__version__ = "1.0.0"
