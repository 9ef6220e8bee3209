# Stock Vision - Storage Package
"""
Data models and file-backed stores.

- models: Pydantic models for data validation
- store: JSON entity store, screenshot store and results document sink
"""
