"""Selection-gated detail actions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .models import Cardinality, SelectionContext

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetailAction:
    name: str
    tooltip: str
    gate: frozenset[Cardinality]
    run: Callable[[SelectionContext], object]


class ActionDispatcher:
    """Tracks the selection and which detail actions it makes invocable.

    The host drops its detail buttons on every cardinality transition, so the
    exposed set is re-registered on each notification even when unchanged.
    """

    def __init__(
        self,
        actions: Iterable[DetailAction],
        expose: Callable[[list[str]], None] | None = None,
    ) -> None:
        self._actions: dict[str, DetailAction] = {a.name: a for a in actions}
        self._expose = expose or (lambda _names: None)
        self._selection = SelectionContext()

    @property
    def selection(self) -> SelectionContext:
        return self._selection

    def actions(self) -> list[DetailAction]:
        return list(self._actions.values())

    def available(self) -> list[str]:
        kind = self._selection.cardinality
        return [a.name for a in self._actions.values() if kind in a.gate]

    def on_selection(self, kind: Cardinality | str, selection: SelectionContext) -> list[str]:
        kind = Cardinality(kind)
        if kind is not selection.cardinality:
            log.debug(
                "Selection callback %s disagrees with %d selected; using the selection",
                kind.value, len(selection),
            )
        self._selection = selection
        names = self.available()
        log.debug("Selection callback %s %s -> %s", kind.value, list(selection.ids), names)
        self._expose(names)
        return names

    def invoke(self, name: str) -> bool:
        action = self._actions.get(name)
        if action is None or name not in self.available():
            log.debug("Action %s unavailable for %s selection", name, self._selection.cardinality.value)
            return False
        log.debug("%s action invoked with %s", name, list(self._selection.ids))
        action.run(self._selection)
        return True
