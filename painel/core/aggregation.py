# painel/core/aggregation.py
"""Agrupamento das movimentações por período e cálculo dos indicadores.

Todas as somas são feitas em centavos inteiros (int64 no pandas), de modo que
valores com duas casas decimais nunca acumulam erro de ponto flutuante. A
conversão para ``Decimal`` acontece apenas na saída.
"""
import datetime
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

import pandas as pd

from painel.core.models import CENT, GroupBy, Kind, Movement

PERIOD_FREQ = {
    GroupBy.MONTH: "M",
    GroupBy.QUARTER: "Q",
    GroupBy.YEAR: "Y",
}

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Bucket:
    label: str
    total: Decimal
    income: Decimal
    expense: Decimal
    count: int = 0


@dataclass(frozen=True)
class Kpis:
    total: Decimal
    income: Decimal
    expense: Decimal
    count: int
    average: Decimal
    top_category: Optional[str]


def from_cents(cents) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)


def round_brl(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def bucket_key(date: datetime.date, group_by: GroupBy) -> str:
    """Chave do período: ``YYYY-MM``, ``YYYY-Q1``..``YYYY-Q4`` ou ``YYYY``."""
    if group_by is GroupBy.MONTH:
        return f"{date.year:04d}-{date.month:02d}"
    if group_by is GroupBy.QUARTER:
        return f"{date.year:04d}-Q{(date.month - 1) // 3 + 1}"
    return f"{date.year:04d}"


def _period_label(period: pd.Period, group_by: GroupBy) -> str:
    return bucket_key(period.start_time.date(), group_by)


def movements_frame(movements: Iterable[Movement]) -> pd.DataFrame:
    """DataFrame com uma linha por movimentação e o valor em centavos."""
    rows = [(m.date, m.category, m.cents, m.kind is Kind.EXPENSE) for m in movements]
    df = pd.DataFrame(rows, columns=["data", "rubrica", "centavos", "despesa"])
    df["data"] = pd.to_datetime(df["data"])
    df["centavos"] = df["centavos"].astype("int64")
    df["despesa"] = df["despesa"].astype(bool)
    return df


def aggregate(movements: Iterable[Movement],
              group_by: GroupBy = GroupBy.MONTH,
              start: Optional[datetime.date] = None,
              end: Optional[datetime.date] = None) -> List[Bucket]:
    """Soma as movimentações por período, em ordem crescente de chave.

    Com ``start`` e ``end`` informados, os períodos sem movimentação dentro do
    intervalo aparecem zerados.
    """
    freq = PERIOD_FREQ[group_by]
    df = movements_frame(movements)
    columns = ["total", "receita", "despesa", "quantidade"]

    if df.empty:
        grouped = pd.DataFrame(columns=columns, dtype="int64")
    else:
        df["periodo"] = df["data"].dt.to_period(freq)
        df["receita"] = df["centavos"].where(~df["despesa"], 0)
        df["gasto"] = df["centavos"].where(df["despesa"], 0)
        grouped = df.groupby("periodo").agg(
            total=("centavos", "sum"),
            receita=("receita", "sum"),
            despesa=("gasto", "sum"),
            quantidade=("centavos", "size"),
        )

    if start and end and start <= end:
        full_range = pd.period_range(start=pd.Timestamp(start), end=pd.Timestamp(end), freq=freq)
        if not grouped.empty:
            full_range = full_range.union(grouped.index)
        grouped = grouped.reindex(full_range, fill_value=0)

    if grouped.empty:
        return []

    grouped = grouped.sort_index()
    return [
        Bucket(
            label=_period_label(period, group_by),
            total=from_cents(row["total"]),
            income=from_cents(row["receita"]),
            expense=from_cents(row["despesa"]),
            count=int(row["quantidade"]),
        )
        for period, row in grouped.iterrows()
    ]


def compute_kpis(movements: Iterable[Movement]) -> Kpis:
    """Indicadores sobre todo o conjunto filtrado (não por período)."""
    df = movements_frame(movements)
    count = len(df)
    if count == 0:
        return Kpis(total=ZERO, income=ZERO, expense=ZERO, count=0, average=ZERO, top_category=None)

    total = int(df["centavos"].sum())
    expense = int(df.loc[df["despesa"], "centavos"].sum())
    by_category = df.groupby("rubrica", sort=False)["centavos"].sum()
    # idxmax devolve a primeira rubrica em caso de empate
    top_category = by_category.abs().idxmax()

    return Kpis(
        total=from_cents(total),
        income=from_cents(total - expense),
        expense=from_cents(expense),
        count=count,
        average=round_brl(Decimal(total) / count / 100),
        top_category=top_category,
    )


def moving_average(buckets: List[Bucket], window: int = 3) -> List[Decimal]:
    """Média móvel do total dos últimos ``window`` períodos, incluindo o atual.

    Antes do primeiro período repete-se o valor do primeiro período.
    """
    totals = [b.total for b in buckets]
    averages = []
    for i in range(len(totals)):
        values = [totals[max(i - k, 0)] for k in range(window)]
        averages.append(round_brl(sum(values, ZERO) / window))
    return averages


def aggregate_by_category(movements: Iterable[Movement],
                          group_by: GroupBy = GroupBy.MONTH) -> Dict[str, Dict[str, Decimal]]:
    """Total por período e por rubrica, períodos em ordem crescente."""
    df = movements_frame(movements)
    if df.empty:
        return {}
    df["periodo"] = df["data"].dt.to_period(PERIOD_FREQ[group_by])
    sums = df.groupby(["periodo", "rubrica"])["centavos"].sum()

    result: Dict[str, Dict[str, Decimal]] = {}
    for (period, category), cents in sums.items():
        label = _period_label(period, group_by)
        result.setdefault(label, {})[category] = from_cents(cents)
    return result


def monthly_by_year(movements: Iterable[Movement]) -> Dict[int, List[Decimal]]:
    """Doze totais mensais (jan..dez) para cada ano presente nos dados."""
    df = movements_frame(movements)
    if df.empty:
        return {}
    df["ano"] = df["data"].dt.year
    df["mes"] = df["data"].dt.month
    table = df.pivot_table(index="ano", columns="mes", values="centavos",
                           aggfunc="sum", fill_value=0)
    table = table.reindex(columns=range(1, 13), fill_value=0).sort_index()
    return {
        int(year): [from_cents(row[month]) for month in range(1, 13)]
        for year, row in table.iterrows()
    }
