"""Detection service.

Owns the pipeline: frame source -> decoder -> ledger -> optional enrichment
-> broadcaster. One daemon thread runs the blocking capture loop and handles
every frame synchronously, so ids follow first-seen order.

Enrichment runs on the capture thread and holds it up for as long as the
device takes to answer (bounded by the enrichment timeout).
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, Optional, Union

from scapy.all import Packet

from reporter.api.broadcaster import EventBroadcaster
from reporter.capture.interfaces import select_interface
from reporter.capture.scapy_capture import ScapyCapture, build_filter
from reporter.detection.enrichment import DeviceEnricher
from reporter.detection.ledger import DetectionLedger
from reporter.errors import CaptureAlreadyRunning, CaptureError, DecodeFailure, EnrichmentFailure
from reporter.models import DetectionEvent
from reporter.preprocessing.frame_decoder import decode_frame
from reporter.utils import config as cfg

logger = logging.getLogger(__name__)


class DetectionService:
    def __init__(self,
                 ledger: Optional[DetectionLedger] = None,
                 broadcaster: Optional[EventBroadcaster] = None,
                 enricher: Optional[DeviceEnricher] = None,
                 ports: Optional[Iterable[int]] = None,
                 interface: Optional[str] = None,
                 capture_factory: Callable[[str, str], Any] = ScapyCapture,
                 interface_selector: Callable[[], str] = select_interface) -> None:
        bc_cfg = cfg.get('broadcast') or {}
        self.ledger = ledger or DetectionLedger()
        self.broadcaster = broadcaster or EventBroadcaster(
            delivery_timeout=float(bc_cfg.get('delivery_timeout', 1.0)),
            queue_size=int(bc_cfg.get('queue_size', 64)),
        )
        self.enricher = enricher if enricher is not None else DeviceEnricher.from_config()
        self.ports = list(ports if ports is not None else cfg.get('capture_ports'))
        self.bpf_filter = build_filter(self.ports)
        self.interface = interface if interface is not None else cfg.get('interface')
        self._capture_factory = capture_factory
        self._select_interface = interface_selector

        self._lock = threading.Lock()
        self._capture = None
        self._thread: Optional[threading.Thread] = None
        self._active_interface: Optional[str] = None
        self.last_error: Optional[str] = None

    # capture control

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self, interface: Optional[str] = None) -> str:
        """Start the capture thread and return the interface it listens on.

        Raises `NoInterfaceFound` when no interface qualifies and
        `CaptureAlreadyRunning` if a capture thread is still alive.
        """
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                raise CaptureAlreadyRunning(f'capture already running on {self._active_interface}')
            iface = interface or self.interface or self._select_interface()
            capture = self._capture_factory(iface, self.bpf_filter)
            thread = threading.Thread(target=self._run, args=(capture,),
                                      name=f'capture-{iface}', daemon=True)
            self._capture = capture
            self._thread = thread
            self._active_interface = iface
            self.last_error = None
            thread.start()
        logger.info("Sniffing started on %s (%s)", iface, self.bpf_filter)
        return iface

    def stop(self) -> None:
        with self._lock:
            capture = self._capture
        if capture is not None:
            capture.stop()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _run(self, capture) -> None:
        try:
            capture.start(self.handle_frame)
        except CaptureError as e:
            self.last_error = str(e)
            logger.exception("Capture stopped: %s", e)
        finally:
            logger.info("Capture on %s ended", capture.interface)

    def clear(self) -> None:
        self.ledger.clear()

    # per-frame pipeline

    def handle_frame(self, frame: Union[bytes, Packet]) -> Optional[DetectionEvent]:
        """Process one frame; return the published event, if any.

        Never raises: a bad frame must not end the capture loop.
        """
        try:
            headers = decode_frame(frame)
        except DecodeFailure as e:
            logger.debug("Discarding frame: %s", e)
            return None

        try:
            event, is_new = self.ledger.record_if_new(headers.src_ip, headers.src_mac, headers.dst_port)
            if not is_new:
                return None
            event = self._enrich(event)
            if not self.ledger.finalize(event):
                logger.info("Dropping detection %d for %s: list cleared meanwhile",
                            event.id, event.source_ip)
                return None
            self.broadcaster.publish(event)
        except Exception as e:
            logger.exception("Failed to process frame from %s: %s", headers.src_ip, e)
            return None

        logger.info("New IP detected: %s on Port: %d with MAC: %s",
                    event.source_ip, event.destination_port, event.source_mac)
        return event

    def _enrich(self, event: DetectionEvent) -> DetectionEvent:
        if not self.enricher or not self.enricher.applies_to(event.destination_port):
            return event
        try:
            info = self.enricher.enrich(event.source_ip)
        except EnrichmentFailure as e:
            logger.warning("Enrichment of %s failed: %s", event.source_ip, e)
            return event
        return event.with_device_info(info)

    def status(self) -> Dict[str, Any]:
        return {
            'running': self.running,
            'interface': self._active_interface,
            'filter': self.bpf_filter,
            'detections': len(self.ledger),
            'subscribers': len(self.broadcaster),
            'last_error': self.last_error,
        }
