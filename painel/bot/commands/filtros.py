import asyncio

from telegram import Update
from telegram.ext import ContextTypes

from painel.bot.session import get_session
from painel.core.models import ComparisonMode, FilterSelection, GroupBy
from painel.utils.text_utils import parse_date_br, parse_int_list, split_list

GROUP_BY_ALIASES = {
    "mes": GroupBy.MONTH,
    "mês": GroupBy.MONTH,
    "trimestre": GroupBy.QUARTER,
    "ano": GroupBy.YEAR,
}

COMPARISON_ALIASES = {
    "nenhum": ComparisonMode.NONE,
    "anterior": ComparisonMode.PREVIOUS_PERIOD,
    "ano_anterior": ComparisonMode.PREVIOUS_YEAR,
}

GROUP_BY_LABELS = {GroupBy.MONTH: "mês", GroupBy.QUARTER: "trimestre", GroupBy.YEAR: "ano"}
COMPARISON_LABELS = {
    ComparisonMode.NONE: "nenhuma",
    ComparisonMode.PREVIOUS_PERIOD: "período anterior",
    ComparisonMode.PREVIOUS_YEAR: "mesmo período do ano anterior",
}


def describe_selection(selection: FilterSelection) -> str:
    """Texto com os filtros ativos."""
    inicio = selection.start.strftime("%d/%m/%Y") if selection.start else "início dos dados"
    fim = selection.end.strftime("%d/%m/%Y") if selection.end else "sem limite"
    rubricas = ", ".join(sorted(selection.categories)) if selection.categories else "todas"
    lines = [
        f"Período: {inicio} a {fim}",
        f"Rubricas: {rubricas}",
        f"Agrupamento: {GROUP_BY_LABELS[selection.group_by]}",
        f"Comparação: {COMPARISON_LABELS[selection.comparison]}",
    ]
    if selection.months:
        lines.append(f"Meses: {', '.join(str(m) for m in sorted(selection.months))}")
    if selection.years:
        lines.append(f"Anos: {', '.join(str(y) for y in sorted(selection.years))}")
    if selection.search:
        lines.append(f"Busca: {selection.search}")
    return "\n".join(lines)


async def filtros_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Mostra os filtros ativos do chat."""
    session = get_session(update, context)
    await update.message.reply_text("Filtros ativos:\n" + describe_selection(session.context.selection))


async def rubricas_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Lista as rubricas existentes na tabela de movimentações."""
    store = context.bot_data["store"]
    listing = await asyncio.to_thread(store.fetch_categories)
    if listing.failed:
        await update.message.reply_text(
            f"Não consegui consultar as rubricas agora ({listing.error}). Tente novamente em instantes."
        )
        return
    if not listing:
        await update.message.reply_text("Nenhuma rubrica encontrada.")
        return
    selected = get_session(update, context).context.selection.categories
    lines = [f"{'✓' if r in selected else '•'} {r}" for r in listing]
    await update.message.reply_text("Rubricas:\n" + "\n".join(lines))


async def filtrar_rubricas_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """`/filtrar_rubricas A, B` seleciona rubricas; sem argumentos volta a considerar todas."""
    session = get_session(update, context)
    rubricas = split_list(" ".join(context.args or []))
    selection = session.context.update(categories=rubricas)
    await update.message.reply_text("Filtros atualizados.\n" + describe_selection(selection))


async def periodo_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """`/periodo INICIO FIM` define o intervalo de datas (inclusivo)."""
    session = get_session(update, context)
    if not context.args or len(context.args) > 2:
        await update.message.reply_text(
            "Uso: `/periodo AAAA-MM-DD [AAAA-MM-DD]`\nExemplo: `/periodo 2025-01-01 2025-06-30`"
        )
        return
    try:
        start = parse_date_br(context.args[0])
        end = parse_date_br(context.args[1]) if len(context.args) > 1 else None
    except ValueError:
        await update.message.reply_text("Data inválida. Use AAAA-MM-DD ou DD/MM/AAAA.")
        return
    if end and start > end:
        await update.message.reply_text("A data inicial deve ser anterior à data final.")
        return
    selection = session.context.update(start=start, end=end)
    await update.message.reply_text("Filtros atualizados.\n" + describe_selection(selection))


async def meses_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """`/meses 1,2,3` filtra por meses do ano; sem argumentos considera todos."""
    session = get_session(update, context)
    try:
        months = parse_int_list(" ".join(context.args or []), 1, 12)
    except ValueError:
        await update.message.reply_text("Meses inválidos. Use números de 1 a 12, ex: `/meses 1,2,3`.")
        return
    selection = session.context.update(months=months)
    await update.message.reply_text("Filtros atualizados.\n" + describe_selection(selection))


async def anos_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """`/anos 2024,2025` filtra por anos; sem argumentos considera todos."""
    session = get_session(update, context)
    try:
        years = parse_int_list(" ".join(context.args or []), 1900, 2999)
    except ValueError:
        await update.message.reply_text("Anos inválidos. Exemplo: `/anos 2024,2025`.")
        return
    selection = session.context.update(years=years)
    await update.message.reply_text("Filtros atualizados.\n" + describe_selection(selection))


async def agrupar_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    choice = " ".join(context.args or []).strip().lower()
    if choice not in GROUP_BY_ALIASES:
        await update.message.reply_text("Uso: `/agrupar mes|trimestre|ano`")
        return
    selection = session.context.update(group_by=GROUP_BY_ALIASES[choice])
    await update.message.reply_text("Filtros atualizados.\n" + describe_selection(selection))


async def comparar_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update, context)
    choice = " ".join(context.args or []).strip().lower()
    if choice not in COMPARISON_ALIASES:
        await update.message.reply_text("Uso: `/comparar nenhum|anterior|ano_anterior`")
        return
    selection = session.context.update(comparison=COMPARISON_ALIASES[choice])
    await update.message.reply_text("Filtros atualizados.\n" + describe_selection(selection))


async def limpar_filtros_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Volta aos filtros padrão: início do ano até hoje, por mês, sem comparação."""
    session = get_session(update, context)
    selection = session.context.reset()
    await update.message.reply_text("Filtros restaurados.\n" + describe_selection(selection))
