from telegram import Update
from telegram.ext import ContextTypes

async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Envia uma mensagem quando o comando /start é emitido."""
    await update.message.reply_text(
        "Olá! Sou o painel das suas movimentações financeiras.\n\n"
        "Comandos úteis:\n"
        "- /resumo para ver receitas, despesas, saldo e o gráfico de balanço.\n"
        "- /tendencias para ver a evolução com média móvel.\n"
        "- /comparativo para comparar períodos.\n"
        "- /detalhes [termo] para listar as movimentações.\n"
        "- /filtros para ver os filtros ativos.\n"
        "- /help para mais informações."
    )

async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Envia uma mensagem quando o comando /help é emitido."""
    await update.message.reply_text(
        "Relatórios:\n"
        "- /resumo: indicadores do período e gráfico de receitas vs. despesas.\n"
        "- /tendencias: total por período com média móvel de 3 períodos.\n"
        "- /comparativo: atual vs. período anterior (ou comparação ano a ano).\n"
        "- /detalhes [termo]: lista as movimentações; o termo busca em rubrica, banco, pagador, descrição e valor.\n\n"
        "Filtros (valem para todos os relatórios e ficam salvos):\n"
        "- /filtros: mostra os filtros ativos.\n"
        "- /rubricas: lista as rubricas existentes.\n"
        "- /filtrar_rubricas A, B: considera só essas rubricas (sem argumentos, todas).\n"
        "- /periodo 2025-01-01 2025-06-30: intervalo de datas.\n"
        "- /meses 1,2,3 e /anos 2024,2025: meses e anos específicos.\n"
        "- /agrupar mes|trimestre|ano: agrupamento dos gráficos.\n"
        "- /comparar nenhum|anterior|ano_anterior: modo de comparação.\n"
        "- /limpar_filtros: volta ao padrão (ano corrente, por mês)."
    )
