"""
Ranked table of models and their measurement state.

Row IDs are assigned once at construction and never change; sorting
only reorders the display sequence. Status moves through
UNMEASURED -> MEASURING -> MEASURED | FAILED, and any row not currently
measuring may be measured again.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

from latai.exceptions import InvalidTransitionError
from latai.models import Model
from latai.providers.base import ProviderClient

logger = logging.getLogger(__name__)


class RowStatus(Enum):
    """Measurement lifecycle of a row."""
    UNMEASURED = "unmeasured"
    MEASURING = "measuring"
    MEASURED = "measured"
    FAILED = "failed"


class SortDirection(Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class RowState:
    """
    Measurement state of a row.

    `latency_ms` and `samples` are only set when MEASURED, `error` only
    when FAILED.
    """

    status: RowStatus = RowStatus.UNMEASURED
    latency_ms: Optional[float] = None
    samples: tuple[float, ...] = ()
    error: Optional[str] = None

    @classmethod
    def measuring(cls) -> "RowState":
        return cls(status=RowStatus.MEASURING)

    @classmethod
    def measured(cls, latency_ms: float, samples: Iterable[float] = ()) -> "RowState":
        return cls(
            status=RowStatus.MEASURED,
            latency_ms=latency_ms,
            samples=tuple(samples),
        )

    @classmethod
    def failed(cls, error: str) -> "RowState":
        return cls(status=RowStatus.FAILED, error=error)


@dataclass
class Row:
    """One model in the table."""

    row_id: int
    model: Model
    provider: ProviderClient
    state: RowState = field(default_factory=RowState)

    @property
    def status(self) -> RowStatus:
        return self.state.status

    @property
    def latency_ms(self) -> Optional[float]:
        return self.state.latency_ms

    @property
    def has_latency(self) -> bool:
        return self.state.status is RowStatus.MEASURED and self.state.latency_ms is not None


class RankedTable:
    """
    Rows keyed by stable ID, with a sortable display order.

    Only the serial consumer of measurement outcomes mutates the table.
    """

    def __init__(self, entries: Iterable[tuple[ProviderClient, Model]]):
        """
        Initialize the table.

        Args:
            entries: (provider, model) pairs in initial display order
        """
        self._rows: dict[int, Row] = {}
        self._order: list[int] = []
        for row_id, (provider, model) in enumerate(entries):
            self._rows[row_id] = Row(row_id=row_id, model=model, provider=provider)
            self._order.append(row_id)

        self.sort_direction: Optional[SortDirection] = None

    @classmethod
    def from_providers(
        cls,
        providers: Iterable[ProviderClient],
        model_filter: str = "",
    ) -> "RankedTable":
        """Build a table from each provider's filtered catalog, in provider order."""
        return cls(
            (provider, model)
            for provider in providers
            for model in provider.list_models(model_filter)
        )

    @property
    def rows(self) -> list[Row]:
        """Rows in current display order."""
        return [self._rows[row_id] for row_id in self._order]

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def get(self, row_id: int) -> Row:
        """
        Get a row by ID.

        Raises:
            KeyError: If no such row exists
        """
        return self._rows[row_id]

    def index_of(self, row_id: int) -> int:
        """Display position of a row."""
        return self._order.index(row_id)

    def mark_measuring(self, row_id: int) -> None:
        """Move a row to MEASURING. Allowed from any other status."""
        row = self.get(row_id)
        if row.status is RowStatus.MEASURING:
            raise InvalidTransitionError(f"row {row_id} is already measuring")
        row.state = RowState.measuring()

    def update_latency(
        self,
        row_id: int,
        latency_ms: float,
        samples: Iterable[float] = (),
    ) -> None:
        """Record a successful measurement."""
        row = self._require_measuring(row_id)
        row.state = RowState.measured(latency_ms, samples)

    def set_error(self, row_id: int, error: str) -> None:
        """Record a failed measurement."""
        row = self._require_measuring(row_id)
        row.state = RowState.failed(error)

    def _require_measuring(self, row_id: int) -> Row:
        row = self.get(row_id)
        if row.status is not RowStatus.MEASURING:
            raise InvalidTransitionError(
                f"row {row_id} is {row.status.value}, expected {RowStatus.MEASURING.value}"
            )
        return row

    def sort_ascending(self) -> None:
        """Stable sort, fastest first. Rows without latency go last."""
        self._order.sort(key=lambda row_id: (
            not self._rows[row_id].has_latency,
            self._rows[row_id].latency_ms or 0.0,
        ))
        self.sort_direction = SortDirection.ASCENDING

    def sort_descending(self) -> None:
        """Stable sort, slowest first. Rows without latency go last."""
        # reverse=True keeps equal keys in their prior relative order
        self._order.sort(key=lambda row_id: (
            self._rows[row_id].has_latency,
            self._rows[row_id].latency_ms or 0.0,
        ), reverse=True)
        self.sort_direction = SortDirection.DESCENDING

    def sort_by_latency(self) -> SortDirection:
        """
        Toggle the latency sort direction, starting ascending.

        Returns:
            The direction just applied
        """
        if self.sort_direction is SortDirection.ASCENDING:
            self.sort_descending()
        else:
            self.sort_ascending()

        logger.debug("Sorted %d rows %s", len(self), self.sort_direction.value)
        return self.sort_direction
