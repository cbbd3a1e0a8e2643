# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Patient registry port (DIP compliant).
# ============================================================================
"""Patient Registry Port.

Defines the interface to the external tabular store that owns patient rows.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IPatientRegistry(Protocol):
    """Interface for the authoritative patient registry.

    Implementations: GoogleSheetsRegistry

    The registry is bulk-read and single-cell-written. It never deletes rows
    on behalf of this system.
    """

    async def fetch_rows(self) -> list[list[str]]:
        """Read every row in the configured range.

        Returns:
            Raw rows in sheet order, starting at the first data row. Trailing
            empty cells may be omitted by the store.

        Raises:
            RegistryError: When the store cannot be read.
        """
        ...

    async def update_cell(self, row_number: int, column: str, value: str) -> None:
        """Write a single cell.

        Args:
            row_number: 1-based sheet row.
            column: Column letter (A..L).
            value: New cell value.

        Raises:
            RegistryError: When the write is rejected or the store is down.
        """
        ...

    async def probe(self) -> bool:
        """Check that the registry is reachable with the configured credentials."""
        ...
