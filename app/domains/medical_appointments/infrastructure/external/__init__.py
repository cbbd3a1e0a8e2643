# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (Medical Appointments)
# Description: External service clients module.
# ============================================================================
"""External Service Clients.

Components:
- GoogleSheetsRegistry: Sheets REST API adapter for the patient registry
"""

from .sheets import GoogleSheetsRegistry

__all__ = [
    "GoogleSheetsRegistry",
]
