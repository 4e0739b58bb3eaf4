# painel/core/categories.py
from typing import Any, Iterable, List


def list_categories(items: Iterable[Any]) -> List[str]:
    """Rubricas distintas e não vazias, em ordem alfabética simples.

    Aceita objetos ``Movement`` ou linhas brutas do Supabase (dict com a chave
    ``rubrica``). A ordenação é por ponto de código, não por locale: rubricas
    acentuadas ("Água") vão para o fim da lista.
    """
    labels = set()
    for item in items:
        if isinstance(item, dict):
            label = item.get("rubrica")
        else:
            label = getattr(item, "category", None)
        if label:
            labels.add(label)
    return sorted(labels)
