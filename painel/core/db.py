# painel/core/db.py
import datetime
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Union

import httpx
from supabase import create_client, Client

from painel import config
from painel.core.categories import list_categories
from painel.core.models import InvalidMovement, KindRule, Movement

logger = logging.getLogger(__name__)

# O PostgREST do Supabase limita cada resposta; lemos em páginas deste tamanho.
PAGE_SIZE = 1000


def get_supabase_client() -> Optional[Client]:
    """Retorna uma instância do cliente Supabase, ou None sem credenciais."""
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        logger.warning("Credenciais do Supabase não configuradas")
        return None
    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)


class FetchStatus(Enum):
    OK = "ok"
    NO_CREDENTIALS = "sem_credenciais"
    FAILED = "falhou"


@dataclass
class FetchResult:
    """Resultado de uma leitura; itera como a lista de movimentações."""
    movements: List[Movement] = field(default_factory=list)
    status: FetchStatus = FetchStatus.OK
    skipped: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is FetchStatus.FAILED

    def __iter__(self) -> Iterator[Movement]:
        return iter(self.movements)

    def __len__(self) -> int:
        return len(self.movements)


@dataclass
class CategoryListing:
    """Rubricas lidas da tabela; falha é distinta de lista vazia."""
    categories: List[str] = field(default_factory=list)
    status: FetchStatus = FetchStatus.OK
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is FetchStatus.FAILED

    def __iter__(self) -> Iterator[str]:
        return iter(self.categories)

    def __len__(self) -> int:
        return len(self.categories)


class MovementStore:
    """Acesso à tabela de movimentações no Supabase.

    Criado uma vez na inicialização e reutilizado por todas as consultas.
    """

    def __init__(self,
                 supabase_client: Optional[Client],
                 table: str = "dmovimentacoes",
                 kind_rule: Union[KindRule, str] = KindRule.SIGN,
                 retries: int = 3,
                 backoff: float = 0.5,
                 sleep=time.sleep):
        self.client = supabase_client
        self.table = table
        self.kind_rule = KindRule(kind_rule)
        self.retries = max(0, retries)
        self.backoff = backoff
        self._sleep = sleep

    @classmethod
    def from_config(cls, supabase_client: Optional[Client] = None) -> "MovementStore":
        if supabase_client is None:
            supabase_client = get_supabase_client()
        return cls(
            supabase_client,
            table=config.MOVEMENTS_TABLE,
            kind_rule=config.KIND_RULE,
            retries=config.FETCH_RETRIES,
            backoff=config.FETCH_BACKOFF_SECONDS,
        )

    def _execute(self, build_query):
        """Executa a consulta, repetindo em falhas de rede transitórias."""
        attempt = 0
        while True:
            try:
                return build_query().execute()
            except httpx.TransportError as e:
                if attempt >= self.retries:
                    raise
                delay = self.backoff * (2 ** attempt)
                logger.warning("Falha transitória no Supabase (%s); nova tentativa em %.1fs", e, delay)
                self._sleep(delay)
                attempt += 1

    def _paged(self, build_query) -> List[dict]:
        """Lê a consulta de ``build_query()`` página a página, até uma página incompleta."""
        rows = []
        offset = 0
        while True:
            response = self._execute(lambda: build_query().range(offset, offset + PAGE_SIZE - 1))
            page = response.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    def _select_movements(self,
                          start: Optional[datetime.date],
                          end: Optional[datetime.date]):
        query = self.client.table(self.table).select("*")
        if start:
            query = query.gte("data", start.isoformat())
        if end:
            query = query.lte("data", end.isoformat())
        return query.order("data", desc=True)

    def fetch_rows(self,
                   start: Optional[datetime.date] = None,
                   end: Optional[datetime.date] = None) -> List[dict]:
        """Lê todas as linhas brutas (com limites de data inclusivos); propaga erros."""
        return self._paged(lambda: self._select_movements(start, end))

    def fetch_movements(self,
                        start: Optional[datetime.date] = None,
                        end: Optional[datetime.date] = None) -> FetchResult:
        """Obtém as movimentações do Supabase, opcionalmente limitadas por data."""
        if self.client is None:
            return FetchResult(status=FetchStatus.NO_CREDENTIALS)
        try:
            rows = self.fetch_rows(start, end)
        except Exception as e:
            logger.error("Erro ao obter movimentações do Supabase: %s", e)
            return FetchResult(status=FetchStatus.FAILED, error=str(e))

        movements = []
        skipped = 0
        for row in rows:
            try:
                movements.append(Movement.from_row(row, self.kind_rule))
            except InvalidMovement as e:
                skipped += 1
                logger.warning("Movimentação ignorada (%s): %r", e, row)
        if skipped:
            logger.warning("%d movimentação(ões) ignorada(s) por dados inválidos", skipped)
        return FetchResult(movements=movements, skipped=skipped)

    def fetch_categories(self) -> CategoryListing:
        """Obtém as rubricas distintas presentes na tabela, em ordem alfabética."""
        if self.client is None:
            return CategoryListing(status=FetchStatus.NO_CREDENTIALS)
        try:
            rows = self._paged(
                lambda: self.client.table(self.table).select("rubrica").order("rubrica")
            )
        except Exception as e:
            logger.error("Erro ao obter rubricas do Supabase: %s", e)
            return CategoryListing(status=FetchStatus.FAILED, error=str(e))
        return CategoryListing(categories=list_categories(rows))
