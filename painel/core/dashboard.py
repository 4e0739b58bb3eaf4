# painel/core/dashboard.py
import asyncio
import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from painel.core.aggregation import Bucket, Kpis, aggregate, compute_kpis, moving_average
from painel.core.categories import list_categories
from painel.core.comparison import ComparisonRow, build_comparison, prior_range
from painel.core.db import FetchResult, FetchStatus, MovementStore
from painel.core.filters import apply_filters
from painel.core.models import ComparisonMode, FilterSelection, Movement
from painel.core.state import FilterContext

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class DashboardView:
    selection: FilterSelection
    buckets: List[Bucket]
    moving_average: List[Decimal]
    kpis: Kpis
    comparison: List[ComparisonRow]
    categories: List[str]
    movements: List[Movement] = field(default_factory=list)
    skipped: int = 0


def build_view(movements: Iterable[Movement],
               selection: FilterSelection,
               skipped: int = 0) -> DashboardView:
    """Filtra, agrupa e calcula tudo o que as telas exibem."""
    movements = list(movements)
    filtered = apply_filters(movements, selection)
    buckets = aggregate(filtered, selection.group_by, selection.start, selection.end)
    return DashboardView(
        selection=selection,
        buckets=buckets,
        moving_average=moving_average(buckets),
        kpis=compute_kpis(filtered),
        comparison=build_comparison(movements, selection),
        categories=list_categories(movements),
        movements=filtered,
        skipped=skipped,
    )


def fetch_range(selection: FilterSelection) -> Tuple[Optional[datetime.date], Optional[datetime.date]]:
    """Intervalo a buscar no Supabase, incluindo o período de comparação."""
    start, end = selection.start, selection.end
    if (selection.comparison is not ComparisonMode.NONE
            and start and end and start <= end):
        prior_start, _ = prior_range(start, end, selection.comparison)
        start = min(start, prior_start)
    return start, end


class DashboardSession:
    """Liga um ``FilterContext`` ao ``MovementStore`` e mantém a última visão.

    Cada atualização recebe um número de sequência; respostas que chegam
    depois de uma atualização mais nova são descartadas.
    """

    def __init__(self, store: MovementStore, context: FilterContext):
        self.store = store
        self.context = context
        self.status = SessionStatus.IDLE
        self.error: Optional[str] = None
        self.view: Optional[DashboardView] = None
        self._sequence = 0

    def _begin(self) -> Tuple[int, FilterSelection]:
        self._sequence += 1
        self.status = SessionStatus.LOADING
        return self._sequence, self.context.selection

    def _apply(self, sequence: int, selection: FilterSelection, result: FetchResult) -> bool:
        if sequence != self._sequence:
            logger.debug("Resposta obsoleta descartada (requisição %d, atual %d)", sequence, self._sequence)
            return False
        if result.failed:
            self.status = SessionStatus.FAILED
            self.error = result.error or "Falha ao consultar o Supabase"
            return True
        self.error = None
        self.view = build_view(result, selection, skipped=result.skipped)
        if result.status is FetchStatus.NO_CREDENTIALS or not self.view.movements:
            self.status = SessionStatus.EMPTY
        else:
            self.status = SessionStatus.READY
        return True

    def refresh(self) -> bool:
        """Busca e recalcula; retorna False se a resposta ficou obsoleta."""
        sequence, selection = self._begin()
        start, end = fetch_range(selection)
        result = self.store.fetch_movements(start, end)
        return self._apply(sequence, selection, result)

    async def refresh_async(self) -> bool:
        sequence, selection = self._begin()
        start, end = fetch_range(selection)
        result = await asyncio.to_thread(self.store.fetch_movements, start, end)
        return self._apply(sequence, selection, result)
