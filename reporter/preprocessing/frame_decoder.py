"""Frame decoding.

`decode_frame()` turns a raw link-layer frame into the header fields the
pipeline needs. A frame is accepted only if its Ethernet, IPv4 and UDP layers
all decode; otherwise `DecodeFailure` is raised and nothing is forwarded.
"""
from typing import Union

from scapy.all import IP, UDP, Ether, Packet

from reporter.errors import DecodeFailure
from reporter.models import DecodedHeaders

ETHER_HEADER_LEN = 14


def _dissect(frame: Union[bytes, Packet]) -> Packet:
    if isinstance(frame, Packet):
        return frame
    if len(frame) < ETHER_HEADER_LEN:
        raise DecodeFailure(f'frame too short for Ethernet ({len(frame)} bytes)')
    try:
        return Ether(frame)
    except Exception as e:
        raise DecodeFailure(f'malformed Ethernet frame: {e}') from e


def decode_frame(frame: Union[bytes, Packet]) -> DecodedHeaders:
    pkt = _dissect(frame)
    if not pkt.haslayer(Ether):
        raise DecodeFailure('no Ethernet layer')
    # IP is scapy's IPv4 layer
    if not pkt.haslayer(IP):
        raise DecodeFailure('no IPv4 layer')
    if not pkt.haslayer(UDP):
        raise DecodeFailure('no UDP layer')

    ether, ip, udp = pkt[Ether], pkt[IP], pkt[UDP]
    return DecodedHeaders(
        src_mac=ether.src,
        src_ip=ip.src,
        dst_ip=ip.dst,
        src_port=int(udp.sport),
        dst_port=int(udp.dport),
    )
