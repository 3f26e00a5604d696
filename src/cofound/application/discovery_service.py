"""Discovery deck: exclusion set and candidate selection. Pure reads, never cached."""

import logging
import time
from collections.abc import Callable, Iterable

from cofound.application.dto import (
    Candidates,
    ExclusionSet,
    StoreUnavailable,
    ValidationError,
)
from cofound.application.ports import (
    ConnectionStore,
    ProfileDirectory,
    StoreUnavailableError,
)
from cofound.application.retry import READ_RETRY, RetryConfig, call_with_retry
from cofound.domain import Connection

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 30


def exclusion_ids(viewer_id: str, connections: Iterable[Connection]) -> frozenset[str]:
    """The viewer plus every counterpart of the viewer's rows, whatever their status."""
    ids = {viewer_id}
    for conn in connections:
        if conn.involves(viewer_id):
            ids.add(conn.counterpart(viewer_id))
    return frozenset(ids)


class DiscoveryService:
    """Builds a viewer's swipe deck from completed profiles they have no row with."""

    def __init__(
        self,
        store: ConnectionStore,
        profiles: ProfileDirectory,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
        sleep: Callable[[float], None] = time.sleep,
        read_retry: RetryConfig = READ_RETRY,
    ) -> None:
        self._store = store
        self._profiles = profiles
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._sleep = sleep
        self._read_retry = read_retry

    def build_exclusion_set(self, viewer_id: str) -> ExclusionSet | ValidationError | StoreUnavailable:
        """Ids that must never appear in the viewer's deck."""
        viewer_id = (viewer_id or "").strip()
        if not viewer_id:
            return ValidationError(message="A profile id is required.")
        try:
            ids = self._read(lambda: self._exclusion_ids(viewer_id))
        except StoreUnavailableError:
            return StoreUnavailable()
        return ExclusionSet(viewer_id=viewer_id, profile_ids=ids)

    def get_candidates(
        self, viewer_id: str, limit: int | None = None
    ) -> Candidates | ValidationError | StoreUnavailable:
        """Up to limit completed profiles outside the viewer's exclusion set.

        Ordered by created_at then id, so consecutive fetches are stable while
        the store is unchanged.
        """
        viewer_id = (viewer_id or "").strip()
        if not viewer_id:
            return ValidationError(message="A profile id is required.")
        limit = self.clamp_limit(limit)

        def fetch() -> list:
            excluded = self._exclusion_ids(viewer_id)
            profiles = self._profiles.get_completed_profiles(excluded, limit)
            return [
                p for p in profiles if p.profile_completed and p.id not in excluded
            ][:limit]

        try:
            profiles = self._read(fetch)
        except StoreUnavailableError:
            return StoreUnavailable()
        logger.debug("Discovery for %s: %d candidates", viewer_id, len(profiles))
        return Candidates(profiles=profiles)

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._default_limit
        return max(1, min(int(limit), self._max_limit))

    def _exclusion_ids(self, viewer_id: str) -> frozenset[str]:
        return exclusion_ids(viewer_id, self._store.list_for_profile(viewer_id))

    def _read(self, fn):
        return call_with_retry(fn, self._read_retry, operation="discovery", sleep=self._sleep)
