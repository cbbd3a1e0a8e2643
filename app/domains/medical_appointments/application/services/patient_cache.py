# ============================================================================
# SCOPE: APPLICATION LAYER (Medical Appointments)
# Description: Pull-through mirror of the patient registry.
# ============================================================================
"""Patient Cache.

Keeps an in-memory mirror of every registry row. Each refresh replaces the
whole mirror and bumps a generation counter; write-backs go through
generation-tagged handles so a write never lands on a row that shifted since
the caller looked it up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from app.core.domain import RegistryError, StaleHandleError
from app.core.shared import DateFormatter

from ...domain.entities.patient import COLUMN_LETTERS, FIRST_DATA_ROW, PatientRecord
from .recovery_manager import FailureContext

if TYPE_CHECKING:
    from .context import OrchestrationContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatientHandle:
    """Reference to a mirrored row, valid only for the generation that produced it."""

    generation: int
    key: str
    row_number: int


class PatientCache:
    """Espejo de la planilla de cadastros."""

    def __init__(self, ctx: OrchestrationContext):
        self.ctx = ctx
        self.records: list[PatientRecord] = []
        self.generation = 0
        self._epoch = date.fromisoformat(ctx.settings.SPREADSHEET_EPOCH)

    @property
    def last_refreshed(self) -> int:
        return self.ctx.state.cache_refreshed_at

    def is_stale(self) -> bool:
        ttl_ms = int(self.ctx.settings.CACHE_TTL_SECONDS * 1000)
        return not self.records or (self.ctx.now_ms() - self.last_refreshed) > ttl_ms

    async def ensure_fresh(self, force: bool = False) -> bool:
        """
        Refresh the mirror when it is empty, older than the TTL, or `force` is set.

        Returns:
            True if a refresh happened.

        Raises:
            RegistryError: After reporting a store-error to the RecoveryManager.
        """
        if not force and not self.is_stale():
            return False
        try:
            await self.refresh()
        except RegistryError as e:
            logger.error(f"Registry refresh failed: {e.message}")
            await self.ctx.recovery.handle(e, FailureContext.STORE_ERROR)
            raise
        return True

    async def refresh(self) -> list[PatientRecord]:
        """Replace the mirror with the registry's current rows."""
        rows = await self.ctx.registry.fetch_rows()

        records: list[PatientRecord] = []
        for index, row in enumerate(rows):
            if PatientRecord.is_blank_row(row):
                continue
            record = PatientRecord.from_row(row, row_number=index + FIRST_DATA_ROW)
            self._repair_formats(record)
            records.append(record)

        self.records = records
        self.generation += 1
        self.ctx.state.cache_refreshed_at = self.ctx.now_ms()
        logger.info(f"Registry mirror refreshed: {len(records)} patients (generation {self.generation})")

        await self.backfill_defaults()
        return records

    def _repair_formats(self, record: PatientRecord) -> None:
        for field_name in ("appointment_date", "birth_date"):
            value = getattr(record, field_name).strip()
            if not DateFormatter.is_numeric(value):
                continue
            try:
                setattr(record, field_name, DateFormatter.from_serial_date(value, self._epoch))
            except ValueError as e:
                logger.warning(f"Malformed {field_name} at row {record.row_number}: {e}")

        time_value = record.appointment_time.strip()
        if DateFormatter.is_numeric(time_value):
            try:
                record.appointment_time = DateFormatter.from_day_fraction(time_value)
            except ValueError as e:
                logger.warning(f"Malformed appointment_time at row {record.row_number}: {e}")

    async def backfill_defaults(self) -> int:
        """
        Fill missing address/status in memory and in the registry.

        Write failures are logged and skipped. Returns the number of cells written.
        """
        settings = self.ctx.settings
        defaults = {"address": settings.DEFAULT_ADDRESS, "status": settings.INITIAL_STATUS}
        written = 0

        for record in self.records:
            if not self.ctx.resolver.normalize(record.phone):
                continue
            for field_name, default in defaults.items():
                if getattr(record, field_name).strip():
                    continue
                record.set_field(field_name, default)
                try:
                    await self.ctx.registry.update_cell(record.row_number, COLUMN_LETTERS[field_name], default)
                    written += 1
                except RegistryError as e:
                    logger.warning(f"Backfill of {field_name} failed at row {record.row_number}: {e.message}")

        if written:
            logger.info(f"Backfilled {written} empty registry cells with defaults")
        return written

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def index_of(self, phone: str) -> int:
        """Position of the first row matching `phone`, or -1."""
        wanted = self.ctx.resolver.variants(phone)
        if not wanted:
            return -1
        for index, record in enumerate(self.records):
            if not record.phone.strip():
                continue
            if not wanted.isdisjoint(self.ctx.resolver.variants(record.phone)):
                return index
        return -1

    def find(self, phone: str) -> PatientRecord | None:
        index = self.index_of(phone)
        return self.records[index] if index >= 0 else None

    def key_for(self, phone: str) -> str:
        """Canonical key of the registry row matching `phone`, else of `phone` itself."""
        record = self.find(phone)
        if record is not None:
            return self.ctx.resolver.normalize(record.phone)
        return self.ctx.resolver.normalize(phone)

    def handle_for(self, phone: str) -> PatientHandle | None:
        record = self.find(phone)
        if record is None:
            return None
        return PatientHandle(
            generation=self.generation,
            key=self.ctx.resolver.normalize(record.phone),
            row_number=record.row_number,
        )

    def resolve(self, handle: PatientHandle) -> PatientRecord:
        """
        Record behind a handle.

        Raises:
            StaleHandleError: If the mirror was refreshed since the handle was
                issued, or the row no longer holds the handle's phone.
        """
        if handle.generation != self.generation:
            raise StaleHandleError(handle.key, handle.generation, self.generation)
        for record in self.records:
            if record.row_number == handle.row_number:
                if self.ctx.resolver.matches(record.phone, handle.key):
                    return record
                break
        raise StaleHandleError(
            handle.key,
            handle.generation,
            self.generation,
            message=f"Row {handle.row_number} no longer holds {handle.key}",
        )

    def active_keys(self) -> set[str]:
        keys = (self.ctx.resolver.normalize(record.phone) for record in self.records)
        return {key for key in keys if key}

    # ------------------------------------------------------------------
    # Write-back
    # ------------------------------------------------------------------

    async def write_field(self, handle: PatientHandle, field_name: str, value: str) -> bool:
        """
        Write one field to the registry and mirror it in place.

        Returns:
            False if the registry rejected the write (already reported as store-error).

        Raises:
            StaleHandleError: For a handle from another generation or a shifted row.
        """
        record = self.resolve(handle)
        column = COLUMN_LETTERS[field_name]
        try:
            await self.ctx.registry.update_cell(handle.row_number, column, value)
        except RegistryError as e:
            logger.error(f"Registry write {column}{handle.row_number} failed: {e.message}")
            await self.ctx.recovery.handle(e, FailureContext.STORE_ERROR)
            return False

        record.set_field(field_name, value)
        logger.info(f"Registry updated: {column}{handle.row_number} = {value}")
        return True

    async def write_fields(self, handle: PatientHandle, values: dict[str, str]) -> bool:
        """Write several fields in order; stops at the first failed write."""
        for field_name, value in values.items():
            if not await self.write_field(handle, field_name, value):
                return False
        return True
