# painel/bot/commands/__init__.py

from .utils import start_command, help_command
from .relatorios import (
    comparativo_command,
    detalhes_command,
    resumo_command,
    tendencias_command,
)
from .filtros import (
    agrupar_command,
    anos_command,
    comparar_command,
    filtrar_rubricas_command,
    filtros_command,
    limpar_filtros_command,
    meses_command,
    periodo_command,
    rubricas_command,
)

ALL_COMMANDS = {
    "start": start_command,
    "help": help_command,
    "resumo": resumo_command,
    "tendencias": tendencias_command,
    "comparativo": comparativo_command,
    "detalhes": detalhes_command,
    "filtros": filtros_command,
    "rubricas": rubricas_command,
    "filtrar_rubricas": filtrar_rubricas_command,
    "periodo": periodo_command,
    "meses": meses_command,
    "anos": anos_command,
    "agrupar": agrupar_command,
    "comparar": comparar_command,
    "limpar_filtros": limpar_filtros_command,
}
