"""Test data providers."""

from healwright.data.excel import ExcelDataProvider

__all__ = ["ExcelDataProvider"]
