"""Google Sheets patient registry."""

from .client import SCOPES, GoogleSheetsRegistry

__all__ = [
    "SCOPES",
    "GoogleSheetsRegistry",
]
