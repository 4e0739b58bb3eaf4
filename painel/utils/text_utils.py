# painel/utils/text_utils.py
import datetime
import re
from decimal import Decimal
from typing import List, Optional

from painel.core.aggregation import round_brl


def format_brl(value: Optional[Decimal]) -> str:
    """Formata no padrão brasileiro.
    Ex: Decimal("-1234.5") -> "-R$ 1.234,50"
    """
    if value is None:
        return "—"
    value = round_brl(Decimal(value))
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):.2f}".partition(".")
    integer = f"{int(integer):,}".replace(",", ".")
    return f"{sign}R$ {integer},{fraction}"


def format_percent(value: Optional[Decimal]) -> str:
    if value is None:
        return "n/d"
    return f"{value:+.2f}%".replace(".", ",")


def parse_date_br(text: str) -> datetime.date:
    """Aceita ``AAAA-MM-DD`` ou ``DD/MM/AAAA``; levanta ValueError caso contrário."""
    text = text.strip()
    if re.fullmatch(r"\d{2}/\d{2}/\d{4}", text):
        return datetime.datetime.strptime(text, "%d/%m/%Y").date()
    return datetime.date.fromisoformat(text)


def split_list(text: str) -> List[str]:
    """Divide uma lista separada por vírgulas, descartando itens vazios."""
    return [item.strip() for item in text.split(",") if item.strip()]


def parse_int_list(text: str, lower: int, upper: int) -> List[int]:
    values = []
    for item in split_list(text):
        value = int(item)
        if not lower <= value <= upper:
            raise ValueError(f"{value} fora do intervalo {lower}-{upper}")
        values.append(value)
    return sorted(set(values))


def truncate(text: str, limit: int) -> str:
    """Corta o texto em ``limit`` caracteres, terminando com reticências."""
    if len(text) <= limit:
        return text
    return text[:limit - 1].rstrip() + "…"


def split_message(lines: List[str], limit: int) -> List[str]:
    """Junta as linhas em mensagens de até ``limit`` caracteres, sem quebrar linhas.

    Uma linha maior que o limite sozinha é cortada.
    """
    chunks = []
    current = ""
    for line in lines:
        line = truncate(line, limit)
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > limit:
            chunks.append(current)
            candidate = line
        current = candidate
    if current:
        chunks.append(current)
    return chunks
