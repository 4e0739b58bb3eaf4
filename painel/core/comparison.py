# painel/core/comparison.py
import datetime
from dataclasses import dataclass
from decimal import Decimal
from itertools import zip_longest
from typing import Iterable, List, Optional, Tuple

from painel.core.aggregation import ZERO, Bucket, aggregate, round_brl
from painel.core.filters import apply_filters
from painel.core.models import ComparisonMode, FilterSelection, Movement


@dataclass(frozen=True)
class ComparisonRow:
    label: str
    current: Decimal
    prior: Decimal
    delta: Decimal
    percent_change: Optional[Decimal]


def percent_change(current: Decimal, prior: Decimal) -> Optional[Decimal]:
    """Variação percentual sobre o valor absoluto anterior; None quando anterior é zero."""
    if prior == 0:
        return None
    return round_brl((current - prior) / abs(prior) * 100)


def compare(current: List[Bucket], prior: List[Bucket]) -> List[ComparisonRow]:
    """Compara duas séries período a período, pela posição e não pela chave.

    O mês N do período atual é comparado com o mês N do período anterior. A
    série mais curta conta como zero nas posições que faltam.
    """
    rows = []
    for cur, old in zip_longest(current, prior):
        cur_total = cur.total if cur is not None else ZERO
        old_total = old.total if old is not None else ZERO
        rows.append(ComparisonRow(
            label=cur.label if cur is not None else old.label,
            current=cur_total,
            prior=old_total,
            delta=cur_total - old_total,
            percent_change=percent_change(cur_total, old_total),
        ))
    return rows


def shift_year(date: datetime.date, years: int = -1) -> datetime.date:
    try:
        return date.replace(year=date.year + years)
    except ValueError:
        # 29/02 em ano não bissexto
        return date.replace(year=date.year + years, day=28)


def prior_range(start: datetime.date,
                end: datetime.date,
                mode: ComparisonMode) -> Tuple[datetime.date, datetime.date]:
    """Intervalo de comparação para ``start``..``end`` (ambos inclusivos)."""
    if start > end:
        raise ValueError("A data inicial deve ser anterior à data final")
    if mode is ComparisonMode.PREVIOUS_PERIOD:
        length = (end - start).days + 1
        prior_end = start - datetime.timedelta(days=1)
        return prior_end - datetime.timedelta(days=length - 1), prior_end
    if mode is ComparisonMode.PREVIOUS_YEAR:
        return shift_year(start), shift_year(end)
    raise ValueError(f"Modo de comparação sem intervalo anterior: {mode.value}")


def build_comparison(movements: Iterable[Movement], selection: FilterSelection) -> List[ComparisonRow]:
    """Agrega o período atual e o anterior a partir da mesma lista e compara."""
    if selection.comparison is ComparisonMode.NONE or not selection.start or not selection.end:
        return []
    if selection.start > selection.end:
        return []
    movements = list(movements)
    prior_start, prior_end = prior_range(selection.start, selection.end, selection.comparison)

    current = aggregate(
        apply_filters(movements, selection),
        selection.group_by, selection.start, selection.end,
    )
    # Meses/anos discretos excluiriam o intervalo anterior por inteiro
    prior_selection = selection.with_changes(start=prior_start, end=prior_end, months=(), years=())
    prior = aggregate(
        apply_filters(movements, prior_selection),
        selection.group_by, prior_start, prior_end,
    )
    return compare(current, prior)
