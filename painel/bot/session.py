# painel/bot/session.py
from telegram import Update
from telegram.ext import ContextTypes

from painel.core.dashboard import DashboardSession, SessionStatus
from painel.core.state import FILTER_STATE_KEY

SESSION_KEY = "painel_session"


def get_session(update: Update, context: ContextTypes.DEFAULT_TYPE) -> DashboardSession:
    """Sessão do painel do chat atual, com os filtros reidratados do arquivo."""
    session = context.chat_data.get(SESSION_KEY)
    if session is None:
        state_store = context.bot_data["filter_state"]
        key = f"{FILTER_STATE_KEY}:{update.effective_chat.id}"
        session = DashboardSession(context.bot_data["store"], state_store.context_for(key))
        context.chat_data[SESSION_KEY] = session
    return session


async def refreshed_session(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Atualiza a sessão; responde ao usuário e retorna None se não houver o que mostrar."""
    session = get_session(update, context)
    if not await session.refresh_async():
        return None
    if session.status is SessionStatus.FAILED:
        await update.message.reply_text(
            f"Não consegui consultar as movimentações agora ({session.error}). Tente novamente em instantes."
        )
        return None
    if session.status is SessionStatus.EMPTY:
        await update.message.reply_text(
            "Nenhuma movimentação encontrada para os filtros atuais. Use /filtros para conferir."
        )
        return None
    return session
