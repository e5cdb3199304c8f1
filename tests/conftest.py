import threading

import pytest
from scapy.all import ARP, IP, TCP, UDP, Ether, IPv6, raw

from reporter.api.broadcaster import EventBroadcaster
from reporter.detection.ledger import DetectionLedger
from reporter.detection.service import DetectionService
from reporter.errors import EnrichmentFailure
from reporter.models import DeviceInfo


def make_frame(src_ip, dport=8888, src_mac="aa:bb:cc:dd:ee:01", dst_ip="255.255.255.255", sport=40000):
    return raw(
        Ether(src=src_mac, dst="ff:ff:ff:ff:ff:ff")
        / IP(src=src_ip, dst=dst_ip)
        / UDP(sport=sport, dport=dport)
        / b"IP report"
    )


def make_tcp_frame(src_ip, dport=8888):
    return raw(Ether(src="aa:bb:cc:dd:ee:02") / IP(src=src_ip, dst="10.0.0.1") / TCP(dport=dport))


def make_arp_frame():
    return raw(Ether(src="aa:bb:cc:dd:ee:03", dst="ff:ff:ff:ff:ff:ff") / ARP(psrc="10.0.0.9", pdst="10.0.0.1"))


def make_ipv6_udp_frame():
    return raw(Ether(src="aa:bb:cc:dd:ee:04") / IPv6(src="fe80::1", dst="ff02::1") / UDP(dport=8888))


class FakeEnricher:
    """Stands in for DeviceEnricher; returns or raises a canned result."""

    def __init__(self, port=14235, result=None, error=None, on_enrich=None):
        self.port = port
        self.result = result or DeviceInfo(device_type="X", ideal_rate=5.0)
        self.error = error
        self.on_enrich = on_enrich
        self.calls = []

    def applies_to(self, destination_port):
        return destination_port == self.port

    def enrich(self, source_ip):
        self.calls.append(source_ip)
        if self.on_enrich:
            self.on_enrich(source_ip)
        if self.error:
            raise EnrichmentFailure(self.error)
        return self.result


class FakeCapture:
    """Feeds preset frames to the callback, then blocks until stopped."""

    frames = []
    open_error = None

    def __init__(self, interface, bpf_filter):
        self.interface = interface
        self.bpf_filter = bpf_filter
        self._stopped = threading.Event()

    def start(self, callback):
        if self.open_error is not None:
            raise self.open_error
        for frame in self.frames:
            callback(frame)
        self._stopped.wait(5)

    def stop(self):
        self._stopped.set()


@pytest.fixture
def fake_enricher():
    return FakeEnricher()


@pytest.fixture
def broadcaster():
    return EventBroadcaster(delivery_timeout=0.2, queue_size=16)


@pytest.fixture
def service(fake_enricher, broadcaster):
    svc = DetectionService(
        ledger=DetectionLedger(),
        broadcaster=broadcaster,
        enricher=fake_enricher,
        ports=[14235, 8888, 12345],
        capture_factory=FakeCapture,
        interface_selector=lambda: "eth0",
    )
    yield svc
    svc.stop()
    svc.join(2)
