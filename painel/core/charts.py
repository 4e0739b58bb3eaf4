# painel/core/charts.py
import io
from decimal import Decimal
from typing import Dict, List, Optional, Union

import matplotlib
matplotlib.use("Agg")  # sem display no servidor
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from painel.core.aggregation import Bucket
from painel.core.comparison import ComparisonRow

# Configurações globais para os gráficos (cores, fontes, etc.)
plt.style.use('seaborn-v0_8-darkgrid')
plt.rcParams['font.family'] = 'sans-serif'
plt.rcParams['font.size'] = 10
plt.rcParams['axes.labelsize'] = 12
plt.rcParams['axes.titlesize'] = 14
plt.rcParams['legend.fontsize'] = 10

COLORS = {
    'Receita': '#28a745',
    'Despesa': '#dc3545',
    'Saldo': '#007bff',
    'Media': '#ec4899',
    'Anterior': '#8b5cf6',
    'Anos': ['#3b82f6', '#8b5cf6', '#ec4899', '#f59e0b', '#10b981', '#06b6d4'],
}

MONTH_ABBR = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]

BRL_FORMATTER = mticker.FormatStrFormatter('R$%.2f')


def _to_png(fig) -> io.BytesIO:
    fig.tight_layout()
    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=150)
    buf.seek(0)
    plt.close(fig)
    return buf


def _floats(values: List[Decimal]) -> List[float]:
    return [float(v) for v in values]


def generate_balance_chart(buckets: List[Bucket]) -> Union[io.BytesIO, None]:
    """Receitas, despesas (em módulo) e saldo por período."""
    if not buckets:
        return None

    labels = [b.label for b in buckets]
    positions = range(len(buckets))
    width = 0.27

    fig, ax = plt.subplots(figsize=(12, 7))
    for offset, name, values in (
        (-width, 'Receita', [b.income for b in buckets]),
        (0, 'Despesa', [abs(b.expense) for b in buckets]),
        (width, 'Saldo', [b.total for b in buckets]),
    ):
        bars = ax.bar([p + offset for p in positions], _floats(values), width,
                      label=name, color=COLORS[name])
        ax.bar_label(bars, fmt='R$%.2f', fontsize=7, padding=3)

    ax.set_title('Balanço: Receitas vs. Despesas', fontsize=16, fontweight='bold')
    ax.set_ylabel('Valor (R$)')
    ax.set_xlabel('Período')
    ax.set_xticks(list(positions))
    ax.set_xticklabels(labels, rotation=45, ha='right')
    ax.yaxis.set_major_formatter(BRL_FORMATTER)
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    ax.legend(title='Tipo')
    return _to_png(fig)


# Rubricas desenhadas individualmente no gráfico de tendências; as demais viram "Outras"
MAX_TREND_CATEGORIES = 6


def _top_categories(by_category: Dict[str, Dict[str, Decimal]], limit: int) -> List[str]:
    totals: Dict[str, Decimal] = {}
    for values in by_category.values():
        for category, value in values.items():
            totals[category] = totals.get(category, Decimal(0)) + abs(value)
    return sorted(totals, key=lambda c: (-totals[c], c))[:limit]


def _stack_by_category(ax, labels: List[str], by_category: Dict[str, Dict[str, Decimal]]) -> None:
    """Barras empilhadas por rubrica; positivos sobem e negativos descem a partir do zero."""
    top = _top_categories(by_category, MAX_TREND_CATEGORIES)
    series = {category: [] for category in top}
    others = []
    for label in labels:
        values = by_category.get(label, {})
        for category in top:
            series[category].append(float(values.get(category, 0)))
        others.append(float(sum((v for c, v in values.items() if c not in top), Decimal(0))))
    if any(others):
        series['Outras'] = others

    palette = plt.get_cmap('tab10')
    positive = [0.0] * len(labels)
    negative = [0.0] * len(labels)
    for idx, (name, values) in enumerate(series.items()):
        bottoms = [positive[i] if v >= 0 else negative[i] for i, v in enumerate(values)]
        ax.bar(labels, values, bottom=bottoms, label=name, color=palette(idx % 10), alpha=0.85)
        for i, v in enumerate(values):
            if v >= 0:
                positive[i] += v
            else:
                negative[i] += v


def generate_trend_chart(buckets: List[Bucket],
                         moving_avg: List[Decimal],
                         by_category: Optional[Dict[str, Dict[str, Decimal]]] = None) -> Union[io.BytesIO, None]:
    """Total por período com a média móvel sobreposta.

    Com ``by_category`` as barras são empilhadas por rubrica.
    """
    if not buckets:
        return None

    labels = [b.label for b in buckets]
    fig, ax = plt.subplots(figsize=(12, 7))
    if by_category:
        _stack_by_category(ax, labels, by_category)
    else:
        ax.bar(labels, _floats([b.total for b in buckets]), color=COLORS['Saldo'], label='Total do período')
    ax.plot(labels, _floats(moving_avg), color=COLORS['Media'], linewidth=2,
            marker='o', label=f'Média móvel ({min(3, len(buckets))}p)')

    ax.set_title('Evolução com Média Móvel', fontsize=16, fontweight='bold')
    ax.set_ylabel('Valor (R$)')
    ax.set_xlabel('Período')
    plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
    ax.yaxis.set_major_formatter(BRL_FORMATTER)
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    ax.legend()
    return _to_png(fig)


def generate_comparison_chart(rows: List[ComparisonRow]) -> Union[io.BytesIO, None]:
    """Período atual lado a lado com o período de comparação."""
    if not rows:
        return None

    positions = range(len(rows))
    width = 0.4
    fig, ax = plt.subplots(figsize=(12, 7))
    ax.bar([p - width / 2 for p in positions], _floats([r.current for r in rows]), width,
           label='Atual', color=COLORS['Saldo'])
    ax.bar([p + width / 2 for p in positions], _floats([r.prior for r in rows]), width,
           label='Anterior', color=COLORS['Anterior'])

    ax.set_title('Comparativo entre Períodos', fontsize=16, fontweight='bold')
    ax.set_ylabel('Valor (R$)')
    ax.set_xticks(list(positions))
    ax.set_xticklabels([r.label for r in rows], rotation=45, ha='right')
    ax.yaxis.set_major_formatter(BRL_FORMATTER)
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    ax.legend()
    return _to_png(fig)


def generate_year_comparison_chart(by_year: Dict[int, List[Decimal]]) -> Union[io.BytesIO, None]:
    """Mês a mês, uma barra por ano."""
    if not by_year:
        return None

    years = sorted(by_year)
    width = 0.8 / len(years)
    fig, ax = plt.subplots(figsize=(14, 7))
    for idx, year in enumerate(years):
        offset = (idx - (len(years) - 1) / 2) * width
        ax.bar([m + offset for m in range(12)], _floats(by_year[year]), width,
               label=str(year), color=COLORS['Anos'][idx % len(COLORS['Anos'])])

    ax.set_title('Comparação Mensal por Ano', fontsize=16, fontweight='bold')
    ax.set_ylabel('Valor (R$)')
    ax.set_xticks(range(12))
    ax.set_xticklabels(MONTH_ABBR)
    ax.yaxis.set_major_formatter(BRL_FORMATTER)
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    ax.legend(title='Ano')
    return _to_png(fig)
