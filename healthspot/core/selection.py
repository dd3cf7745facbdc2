from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Union

from ..providers.base import Coordinate, FetchResult, ProviderRecord
from .errors import ProviderFetchError
from .saved import SavedSet


@dataclass(frozen=True)
class SelectionState:
    """
    Provider list, selected provider and active marker id.
    `selected` is always a member of `providers`, and `selected is None`
    exactly when `active_marker_id is None`. `list_version` changes whenever
    the list itself is replaced; `focus_version` changes on every direct selection,
    including a repeat selection of the provider already selected.
    """
    providers: Tuple[ProviderRecord, ...] = ()
    selected: Optional[ProviderRecord] = None
    active_marker_id: Optional[str] = None
    list_version: int = 0
    focus_version: int = 0

    def find(self, provider_id: str) -> Optional[ProviderRecord]:
        for record in self.providers:
            if record.id == provider_id:
                return record
        return None


class OutcomeStatus(str, Enum):
    LOADED = "loaded"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    status: OutcomeStatus
    count: int = 0
    error: Optional[ProviderFetchError] = None


class SelectionController:
    """Applies fetch results and selections to the selection state and the map center."""

    def __init__(self, default_center: Coordinate, saved: Optional[SavedSet] = None):
        self.saved = saved if saved is not None else SavedSet()
        self._state = SelectionState()
        self._center = default_center

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def center(self) -> Coordinate:
        return self._center

    def set_center(self, center: Coordinate) -> None:
        self._center = center

    def _replace_list(self, providers: Tuple[ProviderRecord, ...]) -> None:
        first = providers[0] if providers else None
        self._state = SelectionState(
            providers=providers,
            selected=first,
            active_marker_id=first.id if first is not None else None,
            list_version=self._state.list_version + 1,
            focus_version=self._state.focus_version,
        )

    def apply_fetch_result(self, result: Union[FetchResult, ProviderFetchError]) -> FetchOutcome:
        if isinstance(result, ProviderFetchError):
            # Center is kept so a retry starts from the same view
            self._replace_list(())
            return FetchOutcome(OutcomeStatus.FAILED, error=result)

        if not result.providers:
            self._replace_list(())
            return FetchOutcome(OutcomeStatus.EMPTY)

        self._replace_list(tuple(result.providers))
        if result.center is not None:
            self._center = result.center
        return FetchOutcome(OutcomeStatus.LOADED, count=len(result.providers))

    def select_provider(self, record: ProviderRecord) -> ProviderRecord:
        member = self._state.find(record.id)
        if member is None:
            raise ValueError(f"provider {record.id!r} is not in the current list")

        self._state = replace(
            self._state,
            selected=member,
            active_marker_id=member.id,
            focus_version=self._state.focus_version + 1,
        )
        if member.coordinate is not None:
            self._center = member.coordinate
        return member

    def select_by_id(self, provider_id: str) -> ProviderRecord:
        member = self._state.find(provider_id)
        if member is None:
            raise KeyError(provider_id)
        return self.select_provider(member)

    def toggle_saved(self, record: ProviderRecord) -> bool:
        """Add when absent, remove when present. Returns whether the record is now saved."""
        if self.saved.has(record.id):
            self.saved.remove(record.id)
            return False
        self.saved.add(record)
        return True
