"""
EIQ Worksheet.

Ordered list of editable application rows addressed by stable ids.
A worksheet owns its rows; derived figures are recomputed from the
current rows and catalog on every call and never stored.
"""
from dataclasses import fields, replace
from typing import Iterable, List, Mapping, Optional, Tuple
import logging

from app.services.eiq_calculator import (
    ComputedRow,
    EIQRow,
    EIQTotals,
    Product,
    eiq_calculator,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(f.name for f in fields(EIQRow)) - {"id"}


class EIQWorksheet:
    """Row list for one EIQ calculation session."""

    def __init__(
        self,
        catalog: Mapping[str, Product],
        rows: Optional[Iterable[EIQRow]] = None
    ):
        self.catalog = catalog
        self._rows: List[EIQRow] = []
        for row in rows or []:
            if self._index(row.id) is not None:
                raise ValueError(f"Duplicate row id: {row.id}")
            self._rows.append(row)

    @property
    def rows(self) -> Tuple[EIQRow, ...]:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def _index(self, row_id: str) -> Optional[int]:
        for i, row in enumerate(self._rows):
            if row.id == row_id:
                return i
        return None

    def get_row(self, row_id: str) -> EIQRow:
        index = self._index(row_id)
        if index is None:
            raise KeyError(row_id)
        return self._rows[index]

    def add_row(self, **values) -> EIQRow:
        """Append a row with default values, optionally pre-filled."""
        unknown = set(values) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown row fields: {sorted(unknown)}")
        row = EIQRow(**values)
        self._rows.append(row)
        logger.debug(f"Added row {row.id}")
        return row

    def update_row(self, row_id: str, **patch) -> EIQRow:
        """
        Apply a partial edit to a row.

        Selecting a different product clears the normal rate override so the
        new product's catalog rate applies, unless the same patch sets one.
        """
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown row fields: {sorted(unknown)}")

        index = self._index(row_id)
        if index is None:
            raise KeyError(row_id)

        current = self._rows[index]
        if "product" in patch and patch["product"] != current.product and "normal_rate" not in patch:
            patch["normal_rate"] = None

        updated = replace(current, **patch)
        self._rows[index] = updated
        return updated

    def remove_row(self, row_id: str) -> None:
        index = self._index(row_id)
        if index is None:
            raise KeyError(row_id)
        del self._rows[index]
        logger.debug(f"Removed row {row_id}")

    def compute(self) -> List[ComputedRow]:
        return eiq_calculator.compute_rows(self.catalog, self._rows)

    def totals(self) -> EIQTotals:
        return eiq_calculator.compute_totals(self.compute())
