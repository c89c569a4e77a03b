"""
Per-feed update detection.

A feed's SyncState maps every expected remote file name to the last-modified
time seen for it. The state lives in memory only: after a restart every file
starts at the sentinel 0 and is downloaded once.
"""

import logging
from typing import Collection, Dict, List, Mapping, Sequence

from dwd_sync.models import FileTimestampEntry

logger = logging.getLogger(__name__)

SENTINEL_MS = 0


class FeedSyncEngine:
    """
    Decides which remote files of one feed changed since the last cycle.

    States:
        Uninitialized: no entries. ``ensure_initialized`` fills one sentinel
            entry per expected file, so the first diff marks everything.
        Tracking: entries present, replaced wholesale by ``commit``.
    """

    def __init__(self, feed_id: str, filenames: Sequence[str]):
        """
        Args:
            feed_id: Feed the state belongs to (for logging)
            filenames: Remote file names of all configured stations
        """
        self.feed_id = feed_id
        self.filenames = list(filenames)
        self._expected = set(self.filenames)
        self._state: Dict[str, int] = {}

    @property
    def initialized(self) -> bool:
        return bool(self._state)

    @property
    def state(self) -> Dict[str, int]:
        """Copy of the current filename -> epoch ms map."""
        return dict(self._state)

    def entries(self) -> List[FileTimestampEntry]:
        return [FileTimestampEntry(name, ts) for name, ts in self._state.items()]

    def ensure_initialized(self) -> bool:
        """
        Synthesize sentinel entries if the state is empty.

        Returns:
            True if the state was (re)built
        """
        if self._state:
            return False
        self._state = {name: SENTINEL_MS for name in self.filenames}
        logger.info(f"[{self.feed_id}] SyncState initialized with {len(self._state)} sentinel entries")
        return True

    def diff(self, remote: Mapping[str, int]) -> List[str]:
        """
        File names whose remote timestamp is newer than the tracked one.

        Only names present on both sides are compared. Equal timestamps are
        unchanged.
        """
        return [
            name
            for name, remote_ms in remote.items()
            if name in self._state and self._state[name] < remote_ms
        ]

    def commit(self, remote: Mapping[str, int], keep: Collection[str] = ()) -> None:
        """
        Replace the state with the remote map.

        Files missing from ``remote`` drop out of the state and are not
        reported as changed until they can be stated again. Files in ``keep``
        retain their tracked timestamp, so a file that could not be
        downloaded or unpacked is detected as changed again next cycle.
        """
        unknown = [name for name in remote if name not in self._expected]
        if unknown:
            logger.warning(f"[{self.feed_id}] Ignoring {len(unknown)} files of unknown stations")
        state = {name: ts for name, ts in remote.items() if name in self._expected}
        kept = [name for name in keep if name in self._state and name in state]
        for name in kept:
            state[name] = self._state[name]
        if kept:
            logger.warning(
                f"[{self.feed_id}] {len(kept)} changed files not processed, retrying next cycle"
            )
        self._state = state

        lost = len(self._expected) - len(self._state)
        if lost:
            logger.info(f"[{self.feed_id}] {lost} files untracked until next successful stat")

    def sync(self, remote: Mapping[str, int]) -> List[str]:
        """Initialize if needed, diff against ``remote`` and commit it."""
        self.ensure_initialized()
        changed = self.diff(remote)
        self.commit(remote)
        return changed

