"""Records passed between pipeline stages."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DecodedHeaders:
    src_mac: str
    src_ip: str
    dst_ip: str
    src_port: int
    dst_port: int


@dataclass(frozen=True)
class DeviceInfo:
    device_type: str
    ideal_rate: float


@dataclass(frozen=True)
class DetectionEvent:
    """A newly seen sender.

    `epoch` is the ledger generation the id was assigned in; it is not part
    of the wire representation.
    """
    id: int
    source_ip: str
    source_mac: str
    destination_port: int
    device_type: Optional[str] = None
    ideal_rate: Optional[float] = None
    epoch: int = field(default=0, compare=False, repr=False)

    @property
    def enriched(self) -> bool:
        return self.device_type is not None and self.ideal_rate is not None

    def with_device_info(self, info: DeviceInfo) -> "DetectionEvent":
        return replace(self, device_type=info.device_type, ideal_rate=info.ideal_rate)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "ip_src": self.source_ip,
            "mac_src": self.source_mac,
            "port": self.destination_port,
        }
        if self.enriched:
            out["type"] = self.device_type
            out["rate_ideal"] = self.ideal_rate
        return out
