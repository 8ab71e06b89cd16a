"""
Local visit list state transitions.

The in-memory visit list is an immutable tuple replaced whole on every event,
so a partially applied update is never observable.

Events:
- OptimisticInsert: append a temporary visit before the remote create returns
- CommitReplace:    swap the temporary visit for the server-confirmed one
- RollbackRemove:   drop the temporary visit after a failed create
- VisitRemoved:     drop a confirmed visit (cancellation)
"""

from dataclasses import dataclass
from typing import Iterable, Tuple, Union

from models.visit import Visit

VisitList = Tuple[Visit, ...]


@dataclass(frozen=True)
class OptimisticInsert:
    visit: Visit


@dataclass(frozen=True)
class CommitReplace:
    temp_id: str
    confirmed: Visit


@dataclass(frozen=True)
class RollbackRemove:
    temp_id: str


@dataclass(frozen=True)
class VisitRemoved:
    visit_id: str


VisitEvent = Union[OptimisticInsert, CommitReplace, RollbackRemove, VisitRemoved]


def reduce_visits(visits: VisitList, event: VisitEvent) -> VisitList:
    """Apply one event and return the new list."""
    if isinstance(event, OptimisticInsert):
        return tuple(visits) + (event.visit,)

    if isinstance(event, CommitReplace):
        confirmed = event.confirmed.model_copy(update={"is_optimistic": False})
        return tuple(
            confirmed if visit.id == event.temp_id else visit for visit in visits
        )

    if isinstance(event, RollbackRemove):
        return tuple(visit for visit in visits if visit.id != event.temp_id)

    if isinstance(event, VisitRemoved):
        return tuple(visit for visit in visits if visit.id != event.visit_id)

    raise TypeError(f"Unknown visit event: {event!r}")


class VisitListStore:
    """
    Holder of the current visit list shared by the coordinators.

    Readers always see a complete tuple; writers go through dispatch().
    """

    def __init__(self, visits: Iterable[Visit] = ()):
        self._visits: VisitList = tuple(visits)

    @property
    def visits(self) -> VisitList:
        return self._visits

    def replace(self, visits: Iterable[Visit]) -> VisitList:
        """Replace the whole list with a fresh snapshot from the server."""
        self._visits = tuple(visits)
        return self._visits

    def dispatch(self, event: VisitEvent) -> VisitList:
        self._visits = reduce_visits(self._visits, event)
        return self._visits

    def optimistic(self) -> VisitList:
        return tuple(visit for visit in self._visits if visit.is_optimistic)
