import pytest
from scapy.all import IP, UDP, Ether

from reporter.errors import DecodeFailure
from reporter.preprocessing.frame_decoder import decode_frame
from tests.conftest import make_arp_frame, make_frame, make_ipv6_udp_frame, make_tcp_frame


class TestDecodeFrame:

    def test_udp_frame_decodes_all_layers(self):
        headers = decode_frame(make_frame("10.0.0.5", dport=14235, src_mac="00:11:22:33:44:55",
                                          dst_ip="10.0.0.255", sport=1234))
        assert headers.src_mac == "00:11:22:33:44:55"
        assert headers.src_ip == "10.0.0.5"
        assert headers.dst_ip == "10.0.0.255"
        assert headers.src_port == 1234
        assert headers.dst_port == 14235

    def test_accepts_dissected_packet(self):
        pkt = Ether(src="00:11:22:33:44:66") / IP(src="192.168.1.20", dst="192.168.1.255") / UDP(dport=8888)
        headers = decode_frame(pkt)
        assert headers.src_ip == "192.168.1.20"
        assert headers.dst_port == 8888

    def test_tcp_frame_rejected(self):
        with pytest.raises(DecodeFailure, match="UDP"):
            decode_frame(make_tcp_frame("10.0.0.5"))

    def test_arp_frame_rejected(self):
        with pytest.raises(DecodeFailure, match="IPv4"):
            decode_frame(make_arp_frame())

    def test_ipv6_frame_rejected(self):
        with pytest.raises(DecodeFailure):
            decode_frame(make_ipv6_udp_frame())

    def test_truncated_frame_rejected(self):
        with pytest.raises(DecodeFailure, match="too short"):
            decode_frame(b"\x00\x01\x02\x03\x04")

    def test_empty_frame_rejected(self):
        with pytest.raises(DecodeFailure):
            decode_frame(b"")
