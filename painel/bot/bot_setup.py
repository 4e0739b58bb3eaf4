# painel/bot/bot_setup.py
import logging

from telegram.ext import Application, CommandHandler

from painel.bot.commands import ALL_COMMANDS

logger = logging.getLogger(__name__)


def setup_bot(config: dict) -> Application:
    """
    Configura a aplicação do bot do Telegram (comandos do painel).
    Retorna o objeto Application configurado, pronto para polling ou webhook.
    """
    application = Application.builder().token(config["TELEGRAM_BOT_TOKEN"]).build()

    # Acesso ao Supabase e arquivo de filtros ficam no bot_data para os comandos
    application.bot_data["store"] = config["STORE"]
    application.bot_data["filter_state"] = config["FILTER_STATE"]

    for name, callback in ALL_COMMANDS.items():
        application.add_handler(CommandHandler(name, callback))

    logger.info("Bot Telegram configurado com %d comandos", len(ALL_COMMANDS))
    return application
