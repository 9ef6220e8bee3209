# Stock Vision - Reports Package
"""
Markdown report files for analysed stocks.
"""
