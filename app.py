import logging

from telegram import Update

from painel import config
from painel.bot.bot_setup import setup_bot
from painel.core.db import MovementStore
from painel.core.state import FilterStateStore

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# O httpx registra cada requisição de polling em INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# --- Função Principal ---
def main() -> None:
    """Inicia o bot em modo polling (uso local, sem webhook)."""
    if not config.TELEGRAM_BOT_TOKEN:
        raise SystemExit("Defina TELEGRAM_BOT_TOKEN no ambiente ou no arquivo .env")

    application = setup_bot({
        "TELEGRAM_BOT_TOKEN": config.TELEGRAM_BOT_TOKEN,
        "STORE": MovementStore.from_config(),
        "FILTER_STATE": FilterStateStore(config.FILTER_STATE_PATH),
    })

    logger.info("Bot Telegram iniciado em modo polling")
    application.run_polling(allowed_updates=Update.ALL_TYPES)

if __name__ == '__main__':
    main()
