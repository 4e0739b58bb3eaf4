# painel/core/models.py
import datetime
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Union

CENT = Decimal("0.01")


class InvalidMovement(ValueError):
    """Linha da tabela de movimentações que não pode ser usada nas agregações."""


class Kind(Enum):
    INCOME = "receita"
    EXPENSE = "despesa"


class KindRule(Enum):
    """Como uma movimentação é classificada em receita ou despesa.

    A regra é aplicada uma única vez, na leitura da linha, e fica gravada em
    ``Movement.kind``.
    """
    SIGN = "sinal"
    RUBRICA_PREFIX = "rubrica"

    def classify(self, category: str, amount: Decimal) -> Kind:
        if self is KindRule.RUBRICA_PREFIX:
            return Kind.EXPENSE if category.startswith("2") else Kind.INCOME
        return Kind.EXPENSE if amount < 0 else Kind.INCOME


class GroupBy(Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class ComparisonMode(Enum):
    NONE = "none"
    PREVIOUS_PERIOD = "previous_period"
    PREVIOUS_YEAR = "previous_year"


def to_cents(value: Union[Decimal, int, float, str]) -> Decimal:
    """Converte um valor monetário para Decimal com 2 casas (arredondamento half-up)."""
    if isinstance(value, float):
        # str() evita carregar o erro binário do float para o Decimal
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidMovement(f"Valor inválido: {value!r}")
    if not amount.is_finite():
        raise InvalidMovement(f"Valor inválido: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_date(value: Any) -> datetime.date:
    """Lê a coluna ``data`` como data de calendário, ignorando hora e fuso."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidMovement(f"Data ausente ou inválida: {value!r}")
    try:
        return datetime.date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise InvalidMovement(f"Data inválida: {value!r}")


@dataclass(frozen=True)
class Movement:
    date: datetime.date
    category: str
    amount: Decimal
    kind: Kind
    bank: Optional[str] = None
    payer: Optional[str] = None
    description: Optional[str] = None
    installments: int = 1

    @classmethod
    def from_row(cls, row: Dict[str, Any], kind_rule: KindRule = KindRule.SIGN) -> "Movement":
        """Monta uma movimentação a partir de uma linha de ``dmovimentacoes``."""
        category = (row.get("rubrica") or "").strip()
        if not category:
            raise InvalidMovement("Rubrica vazia")
        if row.get("valor") is None:
            raise InvalidMovement("Valor ausente")
        amount = to_cents(row["valor"])
        return cls(
            date=parse_date(row.get("data")),
            category=category,
            amount=amount,
            kind=kind_rule.classify(category, amount),
            bank=row.get("banco"),
            payer=row.get("pagador"),
            description=row.get("descricao"),
            installments=row.get("parcelas") or 1,
        )

    @property
    def cents(self) -> int:
        return int(self.amount * 100)

    @property
    def month(self) -> int:
        return self.date.month

    @property
    def quarter(self) -> int:
        return (self.date.month - 1) // 3 + 1

    @property
    def year(self) -> int:
        return self.date.year


def _parse_optional_date(value: Any) -> Optional[datetime.date]:
    if not value:
        return None
    try:
        return datetime.date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _int_set(values: Iterable[Any]) -> FrozenSet[int]:
    result = set()
    for value in values or []:
        try:
            result.add(int(value))
        except (TypeError, ValueError):
            continue
    return frozenset(result)


@dataclass(frozen=True)
class FilterSelection:
    categories: FrozenSet[str] = field(default_factory=frozenset)
    start: Optional[datetime.date] = None
    end: Optional[datetime.date] = None
    months: FrozenSet[int] = field(default_factory=frozenset)
    years: FrozenSet[int] = field(default_factory=frozenset)
    search: str = ""
    group_by: GroupBy = GroupBy.MONTH
    comparison: ComparisonMode = ComparisonMode.NONE

    @classmethod
    def default(cls, today: Optional[datetime.date] = None) -> "FilterSelection":
        """Início do ano corrente até hoje, agrupado por mês, sem comparação."""
        today = today or datetime.date.today()
        return cls(start=today.replace(month=1, day=1), end=today)

    def with_changes(self, **changes: Any) -> "FilterSelection":
        if "categories" in changes:
            changes["categories"] = frozenset(changes["categories"] or ())
        if "months" in changes:
            changes["months"] = frozenset(changes["months"] or ())
        if "years" in changes:
            changes["years"] = frozenset(changes["years"] or ())
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "categories": sorted(self.categories),
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "group_by": self.group_by.value,
            "comparison": self.comparison.value,
        }
        if self.months:
            data["months"] = sorted(self.months)
        if self.years:
            data["years"] = sorted(self.years)
        if self.search:
            data["search"] = self.search
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], today: Optional[datetime.date] = None) -> "FilterSelection":
        """Reconstrói a seleção persistida; campos ausentes ou inválidos voltam ao padrão."""
        default = cls.default(today)
        try:
            group_by = GroupBy(data.get("group_by"))
        except ValueError:
            group_by = default.group_by
        try:
            comparison = ComparisonMode(data.get("comparison"))
        except ValueError:
            comparison = default.comparison
        categories = data.get("categories") or []
        return cls(
            categories=frozenset(c for c in categories if isinstance(c, str) and c),
            start=_parse_optional_date(data.get("start")) if "start" in data else default.start,
            end=_parse_optional_date(data.get("end")) if "end" in data else default.end,
            months=_int_set(data.get("months")),
            years=_int_set(data.get("years")),
            search=str(data.get("search") or ""),
            group_by=group_by,
            comparison=comparison,
        )
