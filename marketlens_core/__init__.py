"""Core analytics: candle resampling, indicators, and signal detection.

This package contains pure business logic with no I/O dependencies
(no database or network access). The service layer in ``marketlens``
feeds it candles from the store and exposes its results over HTTP.
"""
