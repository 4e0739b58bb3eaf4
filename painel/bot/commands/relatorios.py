from telegram import Update
from telegram.constants import MessageLimit
from telegram.ext import ContextTypes

from painel.bot.session import refreshed_session
from painel.core import charts
from painel.core.aggregation import ZERO, aggregate_by_category, monthly_by_year
from painel.core.filters import apply_filters, sort_movements
from painel.core.models import ComparisonMode
from painel.utils.text_utils import format_brl, format_percent, split_message, truncate

# Limite de linhas por resposta de /detalhes
MAX_DETAIL_LINES = 30
MAX_DESCRIPTION_CHARS = 80


async def resumo_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Envia os indicadores do período e o gráfico de balanço."""
    session = await refreshed_session(update, context)
    if session is None:
        return
    view = session.view
    kpis = view.kpis

    message = (
        "Resumo Financeiro\n\n"
        f"Receitas: {format_brl(kpis.income)}\n"
        f"Despesas: {format_brl(kpis.expense)}\n"
        f"Saldo: {format_brl(kpis.total)}\n"
        f"Movimentações: {kpis.count}\n"
        f"Ticket médio: {format_brl(kpis.average)}\n"
        f"Rubrica de maior peso: {kpis.top_category or '—'}"
    )
    if view.skipped:
        message += f"\n\n⚠️ {view.skipped} movimentação(ões) com dados inválidos foram ignoradas."
    await update.message.reply_text(message)

    chart_buffer = charts.generate_balance_chart(view.buckets)
    if chart_buffer:
        chart_buffer.name = "balanco_chart.png"
        await update.message.reply_photo(photo=chart_buffer, caption="Receitas vs. despesas por período")


async def tendencias_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Gera o gráfico de evolução por rubrica com média móvel de 3 períodos."""
    session = await refreshed_session(update, context)
    if session is None:
        return
    view = session.view
    by_category = aggregate_by_category(view.movements, view.selection.group_by)
    chart_buffer = charts.generate_trend_chart(view.buckets, view.moving_average, by_category)
    if chart_buffer:
        chart_buffer.name = "tendencias_chart.png"
        await update.message.reply_photo(photo=chart_buffer, caption="Evolução por rubrica com média móvel (3 períodos)")


async def comparativo_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Compara com o período anterior ou, sem modo definido, mostra a visão ano a ano."""
    session = await refreshed_session(update, context)
    if session is None:
        return
    view = session.view

    if view.selection.comparison is ComparisonMode.NONE or not view.comparison:
        chart_buffer = charts.generate_year_comparison_chart(monthly_by_year(view.movements))
        if chart_buffer:
            chart_buffer.name = "comparativo_anual_chart.png"
            await update.message.reply_photo(
                photo=chart_buffer,
                caption="Comparação mensal por ano. Use /comparar anterior ou /comparar ano_anterior para comparar períodos.",
            )
        return

    lines = ["Comparativo\n"]
    for row in view.comparison:
        lines.append(
            f"{row.label}: {format_brl(row.current)} vs {format_brl(row.prior)} "
            f"({format_brl(row.delta)}, {format_percent(row.percent_change)})"
        )
    await update.message.reply_text("\n".join(lines))

    chart_buffer = charts.generate_comparison_chart(view.comparison)
    if chart_buffer:
        chart_buffer.name = "comparativo_chart.png"
        await update.message.reply_photo(photo=chart_buffer, caption="Atual vs. anterior")


async def detalhes_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Lista as movimentações filtradas, mais recentes primeiro, com busca opcional."""
    session = await refreshed_session(update, context)
    if session is None:
        return

    movements = session.view.movements
    term = " ".join(context.args or []).strip()
    if term:
        movements = apply_filters(movements, session.view.selection.with_changes(search=term))
    if not movements:
        await update.message.reply_text(f"Nenhuma movimentação encontrada para '{term}'.")
        return

    movements = sort_movements(movements)
    lines = ["Movimentações:", ""]
    for m in movements[:MAX_DETAIL_LINES]:
        extras = " - ".join(v for v in (m.bank, m.payer) if v)
        descricao = f" {truncate(m.description, MAX_DESCRIPTION_CHARS)}" if m.description else ""
        line = f"• {m.date.strftime('%d/%m/%Y')} {format_brl(m.amount)} {m.category}{descricao}"
        lines.append(f"{line} ({truncate(extras, MAX_DESCRIPTION_CHARS)})" if extras else line)
    if len(movements) > MAX_DETAIL_LINES:
        lines.append(f"\n... e mais {len(movements) - MAX_DETAIL_LINES} movimentação(ões).")
    total = sum((m.amount for m in movements), ZERO)
    lines.append(f"\nTotal: {format_brl(total)}")

    for chunk in split_message(lines, MessageLimit.MAX_TEXT_LENGTH):
        await update.message.reply_text(chunk)
