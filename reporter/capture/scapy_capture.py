"""Live frame source backed by scapy.

Opens a layer-2 listening socket with a BPF filter on one interface and hands
every matching frame, as raw bytes truncated to `snaplen`, to a callback until
`stop()` is called. A `stop()` issued before the capture starts is honoured.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional

from scapy.all import conf, raw, sniff

from reporter.errors import CaptureError, CaptureOpenError
from reporter.utils import config as cfg

logger = logging.getLogger(__name__)


def build_filter(ports: Iterable[int]) -> str:
    """Return the BPF expression matching UDP datagrams sent to any of `ports`."""
    ports = [int(p) for p in ports]
    if not ports:
        raise ValueError('at least one capture port is required')
    return "udp and (" + " or ".join(f"dst port {p}" for p in ports) + ")"


class ScapyCapture:
    def __init__(self, interface: str, bpf_filter: str, snaplen: Optional[int] = None):
        self.interface = interface
        self.bpf_filter = bpf_filter
        # frames are truncated to this many bytes, as a pcap snapshot length would
        self.snaplen = int(snaplen if snaplen is not None else cfg.get('snaplen', 1600))
        self._sock = None
        self._running = False
        self._stopped = threading.Event()

    @property
    def running(self) -> bool:
        return self._running

    def open(self):
        if self._stopped.is_set():
            return
        try:
            self._sock = conf.L2listen(iface=self.interface, filter=self.bpf_filter)
        except Exception as e:
            raise CaptureOpenError(
                f"cannot open capture on {self.interface!r} with filter {self.bpf_filter!r}: {e}"
            ) from e
        logger.info("Capture opened on %s with filter %r", self.interface, self.bpf_filter)

    def start(self, callback: Callable[[bytes], None]):
        """Open the device and capture; this blocks until `stop()` is called."""
        if self._sock is None:
            self.open()
        # stop() may have run before or while the device was opened
        if self._stopped.is_set():
            self._close()
            return

        def handler(pkt):
            callback(raw(pkt)[:self.snaplen])

        self._running = True
        try:
            sniff(
                opened_socket=self._sock,
                prn=handler,
                store=False,
                stop_filter=lambda _pkt: self._stopped.is_set(),
            )
        except Exception as e:
            if not self._stopped.is_set():
                raise CaptureError(f"capture on {self.interface!r} failed: {e}") from e
        finally:
            self._running = False
            self._close()

    def stop(self):
        self._stopped.set()
        self._running = False
        self._close()

    def _close(self):
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as e:
            logger.debug("Error closing capture socket: %s", e)
