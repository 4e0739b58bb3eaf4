# painel/main.py
import asyncio
import logging
from typing import Optional

from flask import Flask, request, jsonify
from telegram import Update
from telegram.ext import Application

from painel import config
from painel.bot.bot_setup import setup_bot
from painel.core.dashboard import DashboardView, build_view, fetch_range
from painel.core.db import MovementStore
from painel.core.models import ComparisonMode, FilterSelection, GroupBy
from painel.core.state import FilterStateStore
from painel.utils.text_utils import parse_date_br, split_list

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook"

QUERY_GROUP_BY = {"mes": GroupBy.MONTH, "trimestre": GroupBy.QUARTER, "ano": GroupBy.YEAR}
QUERY_COMPARISON = {
    "nenhum": ComparisonMode.NONE,
    "anterior": ComparisonMode.PREVIOUS_PERIOD,
    "ano_anterior": ComparisonMode.PREVIOUS_YEAR,
}


def selection_from_query(args) -> FilterSelection:
    """Seleção de filtros a partir da query string; levanta ValueError se inválida."""
    selection = FilterSelection.default()
    changes = {}
    if "rubricas" in args:
        changes["categories"] = split_list(args.get("rubricas", ""))
    if "inicio" in args:
        changes["start"] = parse_date_br(args["inicio"]) if args["inicio"] else None
    if "fim" in args:
        changes["end"] = parse_date_br(args["fim"]) if args["fim"] else None
    if "agrupamento" in args:
        if args["agrupamento"] not in QUERY_GROUP_BY:
            raise ValueError(f"Agrupamento inválido: {args['agrupamento']}")
        changes["group_by"] = QUERY_GROUP_BY[args["agrupamento"]]
    if "comparacao" in args:
        if args["comparacao"] not in QUERY_COMPARISON:
            raise ValueError(f"Comparação inválida: {args['comparacao']}")
        changes["comparison"] = QUERY_COMPARISON[args["comparacao"]]
    if args.get("busca"):
        changes["search"] = args["busca"]
    selection = selection.with_changes(**changes)
    if selection.start and selection.end and selection.start > selection.end:
        raise ValueError("A data inicial deve ser anterior à data final")
    return selection


def view_to_dict(view: DashboardView) -> dict:
    kpis = view.kpis
    return {
        "filtros": view.selection.to_dict(),
        "kpis": {
            "total": kpis.total,
            "receitas": kpis.income,
            "despesas": kpis.expense,
            "quantidade": kpis.count,
            "ticket_medio": kpis.average,
            "rubrica_principal": kpis.top_category,
        },
        "periodos": [
            {
                "periodo": bucket.label,
                "total": bucket.total,
                "receitas": bucket.income,
                "despesas": bucket.expense,
                "quantidade": bucket.count,
                "media_movel": average,
            }
            for bucket, average in zip(view.buckets, view.moving_average)
        ],
        "comparativo": [
            {
                "periodo": row.label,
                "atual": row.current,
                "anterior": row.prior,
                "diferenca": row.delta,
                "variacao_percentual": row.percent_change,
            }
            for row in view.comparison
        ],
        "rubricas": view.categories,
        "ignoradas": view.skipped,
    }


def create_app(store: MovementStore, ptb_application: Optional[Application] = None) -> Flask:
    flask_app = Flask(__name__)

    @flask_app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"}), 200

    @flask_app.route("/api/painel", methods=["GET"])
    def painel():
        try:
            selection = selection_from_query(request.args)
        except ValueError as e:
            return jsonify({"status": "error", "message": str(e)}), 400

        start, end = fetch_range(selection)
        result = store.fetch_movements(start, end)
        if result.failed:
            return jsonify({"status": "error", "message": "Falha ao consultar o Supabase"}), 502
        return jsonify(view_to_dict(build_view(result, selection, skipped=result.skipped))), 200

    if ptb_application is not None:
        @flask_app.route(WEBHOOK_PATH, methods=["POST"])
        async def telegram_webhook():
            if not request.is_json:
                logger.error("Webhook recebeu requisição não-JSON")
                return jsonify({"status": "error", "message": "Request must be JSON"}), 400

            try:
                update = Update.de_json(request.get_json(), ptb_application.bot)
                await ptb_application.process_update(update)
                return jsonify({"status": "ok"}), 200
            except Exception:
                logger.exception("Falha ao processar update do Telegram")
                return jsonify({"status": "error", "message": "Failed to process update"}), 500

    return flask_app


def build_application() -> Flask:
    """Monta o app WSGI: um único MovementStore compartilhado por bot e API."""
    store = MovementStore.from_config()
    ptb_application = None
    if config.TELEGRAM_BOT_TOKEN:
        ptb_application = setup_bot({
            "TELEGRAM_BOT_TOKEN": config.TELEGRAM_BOT_TOKEN,
            "STORE": store,
            "FILTER_STATE": FilterStateStore(config.FILTER_STATE_PATH),
        })
        # Inicializa a aplicação PTB uma única vez, antes do primeiro webhook
        asyncio.run(ptb_application.initialize())
    else:
        logger.warning("TELEGRAM_BOT_TOKEN ausente; apenas a API HTTP será servida")
    return create_app(store, ptb_application)
