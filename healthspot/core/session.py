"""
Event handlers of the provider map page.

A MapSession wires location -> fetch -> selection -> map. Every flow takes a
generation token when it starts; a flow whose token is no longer the newest
when its fetch resolves is discarded, so a slow early request can never
overwrite what a later one produced.
"""
from __future__ import annotations

import functools
import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Deque, Iterator, List, Optional

from ..providers.base import Coordinate, FetchResult, ProviderRecord, ProviderSource
from .errors import EmptyQuery, LocationUnavailable, ProviderFetchError
from .location import LocationResolver
from .map_sync import MapSyncAdapter
from .selection import FetchOutcome, OutcomeStatus, SelectionController, SelectionState

logger = logging.getLogger(__name__)

MAX_NOTICES = 20


class NoticeKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    EMPTY_RESULT = "empty_result"
    ERROR = "error"
    VALIDATION = "validation"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    title: str
    description: str
    retryable: bool = False


Notifier = Callable[[Notice], None]


def log_notice(notice: Notice) -> None:
    level = logging.WARNING if notice.kind == NoticeKind.ERROR else logging.INFO
    logger.log(level, "%s: %s", notice.title, notice.description, extra={"notice_kind": notice.kind.value})


@dataclass(frozen=True)
class _FetchCall:
    """A fetch with its arguments bound, so a retry re-issues exactly the same request."""
    run: Callable[[], Awaitable[FetchResult]]
    query: Optional[str] = None


class MapSession:
    def __init__(
        self,
        fetcher: ProviderSource,
        resolver: LocationResolver,
        controller: SelectionController,
        *,
        adapter: Optional[MapSyncAdapter] = None,
        notifier: Optional[Notifier] = None,
        search_radius_m: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.resolver = resolver
        self.controller = controller
        self.adapter = adapter
        self.notifier = notifier or log_notice
        self.search_radius_m = search_radius_m

        self.is_loading = False
        self.error: Optional[str] = None
        self.user_location: Optional[Coordinate] = None
        self.notices: Deque[Notice] = deque(maxlen=MAX_NOTICES)

        self._generation = 0
        self._automatic_token: Optional[int] = None
        self._failed_call: Optional[_FetchCall] = None

    @property
    def state(self) -> SelectionState:
        return self.controller.state

    @property
    def center(self) -> Coordinate:
        return self.controller.center

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def can_retry(self) -> bool:
        return self._failed_call is not None

    def attach_map(self, adapter: MapSyncAdapter) -> None:
        self.adapter = adapter
        self._sync_map()

    def _is_current(self, token: int) -> bool:
        return token == self._generation

    @contextmanager
    def _flow(self, *, automatic: bool = False) -> Iterator[int]:
        self._generation += 1
        token = self._generation
        self._automatic_token = token if automatic else None
        self.is_loading = True
        self.error = None
        try:
            yield token
        finally:
            if self._is_current(token):
                self.is_loading = False
                self._automatic_token = None

    def _supersede_automatic(self) -> None:
        """A user action wins over a page-load fetch that has not resolved yet."""
        if self._automatic_token is not None and self._is_current(self._automatic_token):
            logger.info("User action supersedes pending automatic fetch", extra={"generation": self._generation})
            self._generation += 1
            self._automatic_token = None
            self.is_loading = False

    def _notify(self, notice: Notice) -> None:
        self.notices.append(notice)
        self.notifier(notice)

    def _sync_map(self) -> None:
        if self.adapter is not None and not self.adapter.closed:
            self.adapter.sync(self.controller.state, self.controller.center)

    async def _run_fetch(self, token: int, call: _FetchCall) -> Optional[FetchOutcome]:
        try:
            result = await call.run()
        except ProviderFetchError as e:
            result = e

        if not self._is_current(token):
            logger.info(
                "Discarding superseded fetch result",
                extra={"generation": token, "current_generation": self._generation},
            )
            return None

        outcome = self.controller.apply_fetch_result(result)
        self._report(outcome, call)
        self._sync_map()
        return outcome

    def _report(self, outcome: FetchOutcome, call: _FetchCall) -> None:
        query = call.query
        if outcome.status == OutcomeStatus.FAILED:
            message = str(outcome.error) or "Failed to load providers. Please try again."
            self.error = message
            self._failed_call = call
            self._notify(Notice(NoticeKind.ERROR, "Search error" if query else "Error", message, retryable=True))
            return

        self._failed_call = None
        if outcome.status == OutcomeStatus.EMPTY:
            if query:
                description = f'We couldn\'t find any results for "{query}". Try different keywords.'
                self._notify(Notice(NoticeKind.EMPTY_RESULT, "No results found", description))
            else:
                description = (
                    "We couldn't find healthcare providers in this area. "
                    "Try a different location or search term."
                )
                self._notify(Notice(NoticeKind.EMPTY_RESULT, "No providers found", description))
        elif query:
            description = f'Found {outcome.count} healthcare providers for "{query}"'
            self._notify(Notice(NoticeKind.SUCCESS, "Search complete", description))

    async def start(self, search: Optional[str] = None) -> Optional[FetchOutcome]:
        """Page load: locate the user, or run the initial search when one was given."""
        if search is not None and search.strip():
            return await self.search(search)
        return await self._locate_and_fetch(self.resolver, automatic=True)

    async def use_my_location(self, resolver: Optional[LocationResolver] = None) -> Optional[FetchOutcome]:
        return await self._locate_and_fetch(resolver or self.resolver, automatic=False)

    async def _locate_and_fetch(self, resolver: LocationResolver, *, automatic: bool) -> Optional[FetchOutcome]:
        with self._flow(automatic=automatic) as token:
            try:
                coord = await resolver.resolve()
            except LocationUnavailable as e:
                if not self._is_current(token):
                    return None
                logger.warning("Location unavailable, falling back to default providers", extra={"reason": e.reason.value})
                self._notify(
                    Notice(
                        NoticeKind.INFO,
                        "Location unavailable",
                        "Unable to get your location. Showing recommended providers instead.",
                    )
                )
                call = _FetchCall(self.fetcher.fetch_default)
            else:
                # The position is still worth keeping as a search bias
                self.user_location = coord
                if not self._is_current(token):
                    return None
                self.controller.set_center(coord)
                self._sync_map()
                call = _FetchCall(functools.partial(self.fetcher.fetch_near, coord, self.search_radius_m))
            return await self._run_fetch(token, call)

    async def refresh_nearby(self) -> Optional[FetchOutcome]:
        if self.user_location is None:
            return await self.use_my_location()
        location = self.user_location
        with self._flow() as token:
            self.controller.set_center(location)
            self._sync_map()
            call = _FetchCall(functools.partial(self.fetcher.fetch_near, location, self.search_radius_m))
            return await self._run_fetch(token, call)

    async def search(self, query: str) -> Optional[FetchOutcome]:
        if not (query or "").strip():
            self._notify(Notice(NoticeKind.VALIDATION, "Empty search", EmptyQuery().message))
            return None
        query = query.strip()
        with self._flow() as token:
            call = _FetchCall(functools.partial(self.fetcher.fetch_by_query, query, self.user_location), query=query)
            return await self._run_fetch(token, call)

    async def show_recommended(self) -> Optional[FetchOutcome]:
        with self._flow() as token:
            return await self._run_fetch(token, _FetchCall(self.fetcher.fetch_default))

    async def retry(self) -> Optional[FetchOutcome]:
        """Re-issue the last failed fetch with the same arguments. Returns None when nothing failed."""
        call = self._failed_call
        if call is None:
            return None
        with self._flow() as token:
            return await self._run_fetch(token, call)

    def select_provider(self, record: ProviderRecord) -> ProviderRecord:
        """List-row and marker clicks both land here."""
        self._supersede_automatic()
        member = self.controller.select_provider(record)
        self._sync_map()
        return member

    def select_by_id(self, provider_id: str) -> ProviderRecord:
        member = self.state.find(provider_id)
        if member is None:
            raise KeyError(provider_id)
        return self.select_provider(member)

    def toggle_saved(self, record: ProviderRecord) -> bool:
        saved = self.controller.toggle_saved(record)
        if saved:
            self._notify(
                Notice(NoticeKind.SUCCESS, "Provider saved", f"{record.name} has been added to your saved list.")
            )
        else:
            self._notify(
                Notice(NoticeKind.INFO, "Provider removed", f"{record.name} has been removed from your saved list.")
            )
        return saved

    def saved_providers(self) -> List[ProviderRecord]:
        return self.controller.saved.records()

    def resize(self, width: int, height: int) -> bool:
        if self.adapter is None:
            return False
        return self.adapter.resize(width, height)

    async def aclose(self) -> None:
        if self.adapter is not None:
            self.adapter.close()
