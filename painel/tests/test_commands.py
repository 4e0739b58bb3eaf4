import datetime
import io
import os
import tempfile
import threading
import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from painel.bot.bot_setup import setup_bot
from painel.bot.commands import ALL_COMMANDS
from painel.bot.commands.filtros import (
    agrupar_command,
    anos_command,
    comparar_command,
    describe_selection,
    filtrar_rubricas_command,
    filtros_command,
    limpar_filtros_command,
    meses_command,
    periodo_command,
    rubricas_command,
)
from painel.bot.commands.relatorios import (
    comparativo_command,
    detalhes_command,
    resumo_command,
    tendencias_command,
)
from painel.bot.session import SESSION_KEY
from painel.core.dashboard import DashboardSession
from painel.core.db import CategoryListing, FetchResult, FetchStatus, MovementStore
from painel.core.models import ComparisonMode, FilterSelection, GroupBy, KindRule, Movement
from painel.core.state import FilterContext, FilterStateStore

SELECTION = FilterSelection(start=datetime.date(2024, 1, 1), end=datetime.date(2024, 2, 29))


def _mov(data, rubrica, valor, **extra):
    row = {"data": data, "rubrica": rubrica, "valor": valor, **extra}
    return Movement.from_row(row, KindRule.RUBRICA_PREFIX)


MOVEMENTS = [
    _mov("2024-01-15", "201-ALUGUEL", -1000, banco="Itaú"),
    _mov("2024-01-20", "101-SALARIO", 3000, pagador="Empresa"),
    _mov("2024-02-01", "201-ALUGUEL", -1000, banco="Itaú"),
]


class CommandTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.state_store = FilterStateStore(os.path.join(self.tmpdir.name, "filtros.json"))
        self.store = MagicMock(spec=MovementStore)

        self.update = MagicMock()
        self.update.effective_chat.id = 42
        self.update.message.reply_text = AsyncMock()
        self.update.message.reply_photo = AsyncMock()

        self.context = MagicMock()
        self.context.bot_data = {"store": self.store, "filter_state": self.state_store}
        self.context.chat_data = {}
        self.context.args = []

    def tearDown(self):
        self.tmpdir.cleanup()

    def replied_text(self):
        return self.update.message.reply_text.call_args[0][0]


class TestFiltrosCommands(CommandTestCase):
    async def test_periodo_persists_per_chat(self):
        self.context.args = ["2024-01-01", "31/03/2024"]

        await periodo_command(self.update, self.context)

        saved = self.state_store.load("painel:filtros:42")
        self.assertEqual(saved.start, datetime.date(2024, 1, 1))
        self.assertEqual(saved.end, datetime.date(2024, 3, 31))
        self.assertIn("01/01/2024 a 31/03/2024", self.replied_text())
        self.assertIsNone(self.state_store.load("painel:filtros:43"))

    async def test_periodo_invalid_date(self):
        self.context.args = ["ontem"]

        await periodo_command(self.update, self.context)

        self.assertIn("Data inválida", self.replied_text())
        self.assertIsNone(self.state_store.load("painel:filtros:42"))

    async def test_periodo_reversed_range(self):
        self.context.args = ["2024-05-01", "2024-01-01"]

        await periodo_command(self.update, self.context)

        self.assertIn("anterior à data final", self.replied_text())

    async def test_filtrar_rubricas_and_clear(self):
        self.context.args = ["201-ALUGUEL,", "101-SALARIO"]
        await filtrar_rubricas_command(self.update, self.context)
        session = self.context.chat_data[SESSION_KEY]
        self.assertEqual(session.context.selection.categories, frozenset({"201-ALUGUEL", "101-SALARIO"}))

        self.context.args = []
        await filtrar_rubricas_command(self.update, self.context)
        self.assertEqual(session.context.selection.categories, frozenset())
        self.assertIn("Rubricas: todas", self.replied_text())

    async def test_agrupar(self):
        self.context.args = ["Trimestre"]
        await agrupar_command(self.update, self.context)
        self.assertEqual(self.state_store.load("painel:filtros:42").group_by, GroupBy.QUARTER)

        self.context.args = ["semana"]
        await agrupar_command(self.update, self.context)
        self.assertIn("Uso:", self.replied_text())

    async def test_rubricas_marks_selected(self):
        self.store.fetch_categories.return_value = CategoryListing(categories=["101-SALARIO", "201-ALUGUEL"])
        self.context.chat_data[SESSION_KEY] = DashboardSession(
            self.store, FilterContext(SELECTION.with_changes(categories={"201-ALUGUEL"}))
        )

        await rubricas_command(self.update, self.context)

        text = self.replied_text()
        self.assertIn("• 101-SALARIO", text)
        self.assertIn("✓ 201-ALUGUEL", text)

    async def test_rubricas_fetch_runs_off_the_event_loop(self):
        threads = []

        def fetch():
            threads.append(threading.get_ident())
            return CategoryListing(categories=["101-SALARIO"])

        self.store.fetch_categories.side_effect = fetch

        await rubricas_command(self.update, self.context)

        self.assertEqual(len(threads), 1)
        self.assertNotEqual(threads[0], threading.get_ident())

    async def test_rubricas_failure_is_reported(self):
        self.store.fetch_categories.return_value = CategoryListing(status=FetchStatus.FAILED, error="timeout")

        await rubricas_command(self.update, self.context)

        text = self.replied_text()
        self.assertIn("Não consegui consultar as rubricas", text)
        self.assertIn("timeout", text)
        self.assertNotIn("Nenhuma rubrica", text)

    async def test_rubricas_empty_table(self):
        self.store.fetch_categories.return_value = CategoryListing()

        await rubricas_command(self.update, self.context)

        self.assertEqual(self.replied_text(), "Nenhuma rubrica encontrada.")

    async def test_open_bounds_are_described(self):
        self.context.args = ["2025-01-01"]

        await periodo_command(self.update, self.context)

        self.assertIn("Período: 01/01/2025 a sem limite", self.replied_text())
        self.assertIn("Período: início dos dados a sem limite", describe_selection(FilterSelection()))

    async def test_meses(self):
        self.context.args = ["3,", "1"]
        await meses_command(self.update, self.context)
        session = self.context.chat_data[SESSION_KEY]
        self.assertEqual(session.context.selection.months, frozenset({1, 3}))
        self.assertIn("Meses: 1, 3", self.replied_text())

        self.context.args = ["13"]
        await meses_command(self.update, self.context)
        self.assertIn("Meses inválidos", self.replied_text())
        self.assertEqual(session.context.selection.months, frozenset({1, 3}))

        self.context.args = []
        await meses_command(self.update, self.context)
        self.assertEqual(session.context.selection.months, frozenset())

    async def test_anos(self):
        self.context.args = ["2024,2025"]
        await anos_command(self.update, self.context)
        self.assertEqual(self.state_store.load("painel:filtros:42").years, frozenset({2024, 2025}))

        for args in (["24"], ["dois mil"]):
            self.context.args = args
            await anos_command(self.update, self.context)
            self.assertIn("Anos inválidos", self.replied_text())
        self.assertEqual(self.state_store.load("painel:filtros:42").years, frozenset({2024, 2025}))

    async def test_comparar(self):
        self.context.args = ["ano_anterior"]
        await comparar_command(self.update, self.context)
        self.assertEqual(self.state_store.load("painel:filtros:42").comparison, ComparisonMode.PREVIOUS_YEAR)
        self.assertIn("Comparação: mesmo período do ano anterior", self.replied_text())

        self.context.args = ["semestre"]
        await comparar_command(self.update, self.context)
        self.assertIn("Uso:", self.replied_text())
        self.assertEqual(self.state_store.load("painel:filtros:42").comparison, ComparisonMode.PREVIOUS_YEAR)

    async def test_limpar_filtros(self):
        self.context.args = ["201-ALUGUEL"]
        await filtrar_rubricas_command(self.update, self.context)

        self.context.args = []
        await limpar_filtros_command(self.update, self.context)

        self.assertEqual(self.state_store.load("painel:filtros:42"), FilterSelection.default())
        self.assertIn("Filtros restaurados", self.replied_text())
        self.assertIn("Rubricas: todas", self.replied_text())

    async def test_filtros_shows_current_selection(self):
        self.context.chat_data[SESSION_KEY] = DashboardSession(self.store, FilterContext(SELECTION))

        await filtros_command(self.update, self.context)

        self.assertIn("Período: 01/01/2024 a 29/02/2024", self.replied_text())
        self.store.fetch_movements.assert_not_called()


class TestRelatoriosCommands(CommandTestCase):
    def setUp(self):
        super().setUp()
        self.context.chat_data[SESSION_KEY] = DashboardSession(self.store, FilterContext(SELECTION))

    async def test_resumo_failed_fetch(self):
        self.store.fetch_movements.return_value = FetchResult(status=FetchStatus.FAILED, error="timeout")

        await resumo_command(self.update, self.context)

        self.assertIn("Não consegui consultar", self.replied_text())
        self.update.message.reply_photo.assert_not_awaited()

    async def test_resumo_empty(self):
        self.store.fetch_movements.return_value = FetchResult(movements=[])

        await resumo_command(self.update, self.context)

        self.assertIn("Nenhuma movimentação encontrada", self.replied_text())

    @patch("painel.core.charts.generate_balance_chart")
    async def test_resumo_with_data(self, mock_chart):
        mock_chart.return_value = io.BytesIO(b"png")
        self.store.fetch_movements.return_value = FetchResult(movements=list(MOVEMENTS), skipped=1)

        await resumo_command(self.update, self.context)

        text = self.replied_text()
        self.assertIn("Saldo: R$ 1.000,00", text)
        self.assertIn("Ticket médio: R$ 333,33", text)
        self.assertIn("101-SALARIO", text)
        self.assertIn("1 movimentação(ões) com dados inválidos", text)
        buckets = mock_chart.call_args[0][0]
        self.assertEqual([b.label for b in buckets], ["2024-01", "2024-02"])
        self.update.message.reply_photo.assert_awaited_once()

    async def test_detalhes_with_search(self):
        self.store.fetch_movements.return_value = FetchResult(movements=list(MOVEMENTS))
        self.context.args = ["itaú"]

        await detalhes_command(self.update, self.context)

        text = self.replied_text()
        self.assertIn("15/01/2024", text)
        self.assertIn("01/02/2024", text)
        self.assertNotIn("101-SALARIO", text)
        self.assertLess(text.index("01/02/2024"), text.index("15/01/2024"))
        self.assertIn("Total: -R$ 2.000,00", text)

    async def test_detalhes_without_match(self):
        self.store.fetch_movements.return_value = FetchResult(movements=list(MOVEMENTS))
        self.context.args = ["farmácia"]

        await detalhes_command(self.update, self.context)

        self.assertIn("Nenhuma movimentação encontrada para 'farmácia'", self.replied_text())

    async def test_detalhes_long_descriptions_fit_telegram_limit(self):
        movements = [
            _mov(f"2024-01-{day:02d}", "201-MERCADO", -10, descricao="compra " * 80, banco="B" * 200)
            for day in range(1, 31)
        ] + [
            _mov(f"2024-02-{day:02d}", "201-MERCADO", -10, descricao="compra " * 80)
            for day in range(1, 6)
        ]
        self.store.fetch_movements.return_value = FetchResult(movements=movements)

        await detalhes_command(self.update, self.context)

        texts = [c.args[0] for c in self.update.message.reply_text.await_args_list]
        self.assertGreater(len(texts), 1)
        self.assertTrue(all(len(text) <= 4096 for text in texts))
        self.assertTrue(texts[0].startswith("Movimentações:"))
        self.assertIn("e mais 5 movimentação(ões)", "\n".join(texts))
        self.assertIn("Total: -R$ 350,00", texts[-1])

    @patch("painel.core.charts.generate_trend_chart")
    async def test_tendencias_breaks_down_by_category(self, mock_chart):
        mock_chart.return_value = io.BytesIO(b"png")
        self.store.fetch_movements.return_value = FetchResult(movements=list(MOVEMENTS))

        await tendencias_command(self.update, self.context)

        buckets, averages, by_category = mock_chart.call_args[0]
        self.assertEqual([b.label for b in buckets], ["2024-01", "2024-02"])
        self.assertEqual(averages, [Decimal("2000.00"), Decimal("1000.00")])
        self.assertEqual(by_category, {
            "2024-01": {"101-SALARIO": Decimal("3000"), "201-ALUGUEL": Decimal("-1000")},
            "2024-02": {"201-ALUGUEL": Decimal("-1000")},
        })
        self.update.message.reply_photo.assert_awaited_once()

    async def test_tendencias_failed_fetch(self):
        self.store.fetch_movements.return_value = FetchResult(status=FetchStatus.FAILED, error="timeout")

        await tendencias_command(self.update, self.context)

        self.assertIn("Não consegui consultar", self.replied_text())
        self.update.message.reply_photo.assert_not_awaited()

    @patch("painel.core.charts.generate_comparison_chart")
    @patch("painel.core.charts.generate_year_comparison_chart")
    async def test_comparativo_without_mode_shows_years(self, mock_years, mock_rows):
        mock_years.return_value = io.BytesIO(b"png")
        self.store.fetch_movements.return_value = FetchResult(movements=list(MOVEMENTS))

        await comparativo_command(self.update, self.context)

        by_year = mock_years.call_args[0][0]
        self.assertEqual(sorted(by_year), [2024])
        self.assertEqual(by_year[2024][:2], [Decimal("2000"), Decimal("-1000")])
        mock_rows.assert_not_called()
        self.update.message.reply_text.assert_not_awaited()
        self.update.message.reply_photo.assert_awaited_once()

    @patch("painel.core.charts.generate_comparison_chart")
    @patch("painel.core.charts.generate_year_comparison_chart")
    async def test_comparativo_previous_year(self, mock_years, mock_rows):
        mock_rows.return_value = io.BytesIO(b"png")
        self.context.chat_data[SESSION_KEY] = DashboardSession(
            self.store, FilterContext(SELECTION.with_changes(comparison=ComparisonMode.PREVIOUS_YEAR))
        )
        self.store.fetch_movements.return_value = FetchResult(
            movements=[_mov("2023-01-10", "101-SALARIO", 100)] + list(MOVEMENTS)
        )

        await comparativo_command(self.update, self.context)

        self.store.fetch_movements.assert_called_once_with(datetime.date(2023, 1, 1), datetime.date(2024, 2, 29))
        text = self.replied_text()
        self.assertIn("2024-01: R$ 2.000,00 vs R$ 100,00 (R$ 1.900,00, +1900,00%)", text)
        self.assertIn("2024-02: -R$ 1.000,00 vs R$ 0,00 (-R$ 1.000,00, n/d)", text)
        self.assertEqual(len(mock_rows.call_args[0][0]), 2)
        mock_years.assert_not_called()
        self.update.message.reply_photo.assert_awaited_once()

    @patch("painel.core.charts.generate_comparison_chart")
    @patch("painel.core.charts.generate_year_comparison_chart")
    async def test_comparativo_mode_without_range_falls_back_to_years(self, mock_years, mock_rows):
        mock_years.return_value = io.BytesIO(b"png")
        self.context.chat_data[SESSION_KEY] = DashboardSession(
            self.store, FilterContext(FilterSelection(comparison=ComparisonMode.PREVIOUS_PERIOD))
        )
        self.store.fetch_movements.return_value = FetchResult(movements=list(MOVEMENTS))

        await comparativo_command(self.update, self.context)

        mock_rows.assert_not_called()
        mock_years.assert_called_once()
        self.update.message.reply_text.assert_not_awaited()


class TestBotSetup(unittest.TestCase):
    def test_registers_all_commands(self):
        store = MagicMock(spec=MovementStore)
        state_store = MagicMock(spec=FilterStateStore)
        application = setup_bot({
            "TELEGRAM_BOT_TOKEN": "123456:TESTE",
            "STORE": store,
            "FILTER_STATE": state_store,
        })

        self.assertIs(application.bot_data["store"], store)
        self.assertIs(application.bot_data["filter_state"], state_store)
        commands = {name for handler in application.handlers[0] for name in handler.commands}
        self.assertEqual(commands, set(ALL_COMMANDS))


if __name__ == "__main__":
    unittest.main()
