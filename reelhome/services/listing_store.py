"""Listing store - the listings currently shown and which one is focused."""

from typing import Awaitable, Callable, Optional

from reelhome.models.listing import FilterOptions, Listing
from reelhome.services import listings_gateway
from reelhome.services.supabase_client import GatewayResult
from reelhome.utils.logging import correlation_context, generate_correlation_id, get_structured_logger

logger = get_structured_logger(__name__)

FETCH_ERROR = "無法載入物件"
FILTER_ERROR = "篩選失敗"

FetchAll = Callable[[], Awaitable[GatewayResult[list[Listing]]]]
FetchFiltered = Callable[[FilterOptions], Awaitable[GatewayResult[list[Listing]]]]
Listener = Callable[["ListingStore"], None]


class ListingStore:
    """Single source of truth for visible listings and carousel focus.

    State is read through attributes and changed only through the methods
    below. Focus is always a valid index into ``listings``, or 0 when the
    list is empty.

    Every fetch takes a sequence number; a response is applied only if no
    newer fetch has been issued since, so a slow earlier request can never
    overwrite a later one.
    """

    def __init__(
        self,
        fetch_all: Optional[FetchAll] = None,
        fetch_filtered: Optional[FetchFiltered] = None,
        listings: Optional[list[Listing]] = None,
    ):
        self._fetch_all = fetch_all or listings_gateway.get_published_listings
        self._fetch_filtered = fetch_filtered or listings_gateway.filter_listings
        self._listings: list[Listing] = list(listings or [])
        self._focus = 0
        self._is_loading = False
        self._error: Optional[str] = None
        self._filters = FilterOptions()
        self._issued = 0
        self._listeners: list[Listener] = []

    @property
    def listings(self) -> list[Listing]:
        return list(self._listings)

    @property
    def focus(self) -> int:
        return self._focus

    @property
    def current(self) -> Optional[Listing]:
        if not self._listings:
            return None
        return self._listings[self._focus]

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def filters(self) -> FilterOptions:
        return self._filters.model_copy()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener after every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _begin(self) -> int:
        self._issued += 1
        self._is_loading = True
        self._error = None
        self._notify()
        return self._issued

    def _finish(self, seq: int, result: GatewayResult[list[Listing]], error_message: str) -> bool:
        if seq != self._issued:
            logger.info("Discarding stale listing response", sequence=seq, latest=self._issued)
            return False

        self._is_loading = False
        if result.ok:
            self._listings = list(result.data)
            self._focus = 0
        else:
            # keep whatever was shown before
            self._error = error_message
            logger.warning("Listing fetch failed", sequence=seq, reason=result.error)
        self._notify()
        return True

    async def _request(self, fetch: Callable[..., Awaitable[GatewayResult[list[Listing]]]], *args) -> GatewayResult[list[Listing]]:
        """Await a gateway call; a raised error (missing config, client setup) becomes a failed result."""
        try:
            return await fetch(*args)
        except Exception as e:
            logger.error("Listing request raised", error=str(e), error_type=type(e).__name__, exc_info=True)
            return GatewayResult.failure(str(e), [])

    async def fetch_all(self) -> None:
        """Load every published listing, newest first, and focus the first."""
        with correlation_context(generate_correlation_id("fetch")):
            seq = self._begin()
            result = await self._request(self._fetch_all)
            if self._finish(seq, result, FETCH_ERROR):
                logger.info("Listings loaded", sequence=seq, count=len(self._listings), ok=result.ok)

    async def apply_filter(self, filters: FilterOptions) -> None:
        """Store the filter and load the published listings matching all of it."""
        with correlation_context(generate_correlation_id("filter")):
            self._filters = filters.model_copy()
            seq = self._begin()
            result = await self._request(self._fetch_filtered, self._filters)
            if self._finish(seq, result, FILTER_ERROR):
                logger.info(
                    "Filter applied",
                    sequence=seq,
                    filters=self._filters.model_dump(exclude_none=True),
                    count=len(self._listings),
                    ok=result.ok
                )

    async def clear_filter(self) -> None:
        self._filters = FilterOptions()
        await self.fetch_all()

    def set_focus(self, index: int) -> None:
        """Focus index if it is within the current list; otherwise do nothing."""
        if 0 <= index < len(self._listings):
            self._focus = index
            self._notify()

    def can_advance(self) -> bool:
        return self._focus < len(self._listings) - 1

    def can_retreat(self) -> bool:
        return self._focus > 0

    def advance(self) -> bool:
        if not self.can_advance():
            return False
        self._focus += 1
        self._notify()
        return True

    def retreat(self) -> bool:
        if not self.can_retreat():
            return False
        self._focus -= 1
        self._notify()
        return True
