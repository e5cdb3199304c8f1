"""Detection ledger.

Single source of truth for which senders have been seen and which id comes
next. Every read and write of the seen set, the counter and the history goes
through one lock, so the check-and-insert in `record_if_new` is atomic and
`clear` can never interleave with it.

Each `clear` starts a new epoch. Events carry the epoch they were numbered
in; `finalize` rejects events from an older epoch so a detection that was
being enriched across a clear is dropped rather than reported under the new
numbering.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional, Set, Tuple

from reporter.models import DetectionEvent

logger = logging.getLogger(__name__)


class DetectionLedger:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: Set[str] = set()
        self._counter = 0
        self._epoch = 0
        self._history: List[DetectionEvent] = []

    def record_if_new(self, source_ip: str, source_mac: str,
                      destination_port: int) -> Tuple[Optional[DetectionEvent], bool]:
        """Return `(event, True)` for a first sighting, `(None, False)` otherwise."""
        with self._lock:
            if source_ip in self._seen:
                return None, False
            self._seen.add(source_ip)
            self._counter += 1
            event = DetectionEvent(
                id=self._counter,
                source_ip=source_ip,
                source_mac=source_mac,
                destination_port=destination_port,
                epoch=self._epoch,
            )
        return event, True

    def finalize(self, event: DetectionEvent) -> bool:
        """Keep `event` in the history if its epoch is still current."""
        with self._lock:
            if event.epoch != self._epoch:
                return False
            self._history.append(event)
            return True

    def clear(self) -> None:
        with self._lock:
            self._seen = set()
            self._counter = 0
            self._history = []
            self._epoch += 1
        logger.info("Cleared the IP list.")

    def has_seen(self, source_ip: str) -> bool:
        with self._lock:
            return source_ip in self._seen

    def events(self) -> List[DetectionEvent]:
        with self._lock:
            return list(self._history)

    def __len__(self) -> int:
        with self._lock:
            return self._counter

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch
