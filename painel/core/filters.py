# painel/core/filters.py
from typing import Iterable, List

from painel.core.models import FilterSelection, Movement


def matches_search(movement: Movement, term: str) -> bool:
    """Busca textual sem diferenciar maiúsculas em rubrica, banco, pagador, descrição e valor."""
    term = term.lower().strip()
    if not term:
        return True
    fields = (
        movement.category,
        movement.bank,
        movement.payer,
        movement.description,
        f"{movement.amount:.2f}",
    )
    return any(value and term in value.lower() for value in fields)


def matches(movement: Movement, selection: FilterSelection) -> bool:
    # Conjunto vazio de rubricas/meses/anos significa "todos"
    if selection.categories and movement.category not in selection.categories:
        return False
    if selection.months and movement.month not in selection.months:
        return False
    if selection.years and movement.year not in selection.years:
        return False
    if selection.start and movement.date < selection.start:
        return False
    if selection.end and movement.date > selection.end:
        return False
    return matches_search(movement, selection.search)


def apply_filters(movements: Iterable[Movement], selection: FilterSelection) -> List[Movement]:
    """Subconjunto das movimentações que atende à seleção, na ordem original."""
    return [m for m in movements if matches(m, selection)]


def sort_movements(movements: Iterable[Movement], descending: bool = True) -> List[Movement]:
    return sorted(movements, key=lambda m: m.date, reverse=descending)
