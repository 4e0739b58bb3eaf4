# painel/core/state.py
import datetime
import json
import logging
import os
import tempfile
from dataclasses import fields
from typing import Callable, Dict, List, Optional

from painel.core.models import FilterSelection

logger = logging.getLogger(__name__)

FILTER_STATE_KEY = "painel:filtros"

Listener = Callable[[FilterSelection], None]

_SELECTION_FIELDS = {f.name for f in fields(FilterSelection)}


class FilterContext:
    """Fonte única da seleção de filtros de um usuário, com aviso de mudanças."""

    def __init__(self, selection: Optional[FilterSelection] = None, today: Optional[datetime.date] = None):
        self._selection = selection or FilterSelection.default(today)
        self._listeners: List[Listener] = []

    @property
    def selection(self) -> FilterSelection:
        return self._selection

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra ``listener``; retorna uma função que cancela o registro."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, **changes) -> FilterSelection:
        unknown = set(changes) - _SELECTION_FIELDS
        if unknown:
            raise TypeError(f"Campos de filtro desconhecidos: {', '.join(sorted(unknown))}")
        return self._set(self._selection.with_changes(**changes))

    def reset(self, today: Optional[datetime.date] = None) -> FilterSelection:
        return self._set(FilterSelection.default(today))

    def _set(self, selection: FilterSelection) -> FilterSelection:
        if selection == self._selection:
            return selection
        self._selection = selection
        for listener in list(self._listeners):
            listener(selection)
        return selection


class FilterStateStore:
    """Persiste seleções de filtro em um arquivo JSON, uma entrada por chave."""

    def __init__(self, path: str):
        self.path = path

    def _read_all(self) -> Dict[str, dict]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Arquivo de filtros ilegível (%s): %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, key: str = FILTER_STATE_KEY,
             today: Optional[datetime.date] = None) -> Optional[FilterSelection]:
        data = self._read_all().get(key)
        if not isinstance(data, dict):
            return None
        return FilterSelection.from_dict(data, today)

    def save(self, selection: FilterSelection, key: str = FILTER_STATE_KEY) -> None:
        data = self._read_all()
        data[key] = selection.to_dict()
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def bind(self, context: FilterContext, key: str = FILTER_STATE_KEY) -> Callable[[], None]:
        """Grava a seleção de ``context`` a cada mudança."""

        def persist(selection: FilterSelection) -> None:
            try:
                self.save(selection, key)
            except OSError as e:
                logger.error("Erro ao salvar filtros em %s: %s", self.path, e)

        return context.subscribe(persist)

    def context_for(self, key: str = FILTER_STATE_KEY,
                    today: Optional[datetime.date] = None) -> FilterContext:
        """Contexto reidratado do arquivo (ou padrão) e já ligado à persistência."""
        context = FilterContext(self.load(key, today), today)
        self.bind(context, key)
        return context
