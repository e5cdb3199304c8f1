"""Device enrichment.

Senders detected on the enrichable port expose a small HTTP status API. This
module queries it with digest authentication and pulls out the device type
and its ideal hash rate. The device reports the rate in GH/s; events carry
TH/s, hence the division by 1000.

Expected body::

    {"INFO": {"type": "..."}, "SUMMARY": [{"rate_ideal": 12345.0}, ...]}
"""
from __future__ import annotations

import logging
import math
import numbers
from typing import Any, Dict, Optional

import requests
from requests.auth import HTTPDigestAuth

from reporter.errors import EnrichmentFailure
from reporter.models import DeviceInfo
from reporter.utils import config as cfg

logger = logging.getLogger(__name__)

RATE_DIVISOR = 1000


def parse_device_info(body: Any) -> DeviceInfo:
    if not isinstance(body, dict):
        raise EnrichmentFailure('response body is not a JSON object')

    info = body.get('INFO')
    if not isinstance(info, dict):
        raise EnrichmentFailure('missing INFO object')
    device_type = info.get('type')
    if not isinstance(device_type, str):
        raise EnrichmentFailure('missing INFO.type')

    summary = body.get('SUMMARY')
    if not isinstance(summary, list) or not summary:
        raise EnrichmentFailure('missing or empty SUMMARY')
    first = summary[0]
    rate = first.get('rate_ideal') if isinstance(first, dict) else None
    if isinstance(rate, bool) or not isinstance(rate, numbers.Real):
        raise EnrichmentFailure(f'missing or non-numeric rate_ideal: {rate!r}')
    if not math.isfinite(rate):
        raise EnrichmentFailure(f'rate_ideal is not finite: {rate!r}')

    return DeviceInfo(device_type=device_type, ideal_rate=rate / RATE_DIVISOR)


class DeviceEnricher:
    """Fetches `DeviceInfo` from a sender's own HTTP API."""

    def __init__(self, port: int, path: str, username: str, password: str,
                 timeout: float = 5.0, scheme: str = 'http',
                 session: Optional[requests.Session] = None):
        self.port = int(port)
        self.path = path if path.startswith('/') else '/' + path
        self.scheme = scheme
        self.timeout = timeout
        self.auth = HTTPDigestAuth(username, password)
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, section: Optional[Dict[str, Any]] = None, **kwargs) -> "DeviceEnricher":
        section = section or cfg.get('enrich') or {}
        return cls(
            port=section.get('port', 14235),
            path=section.get('path', '/cgi-bin/stats.cgi'),
            username=section.get('username', 'root'),
            password=section.get('password', 'root'),
            timeout=float(section.get('timeout', 5.0)),
            scheme=section.get('scheme', 'http'),
            **kwargs,
        )

    def applies_to(self, destination_port: int) -> bool:
        return destination_port == self.port

    def url_for(self, source_ip: str) -> str:
        return f"{self.scheme}://{source_ip}{self.path}"

    def enrich(self, source_ip: str) -> DeviceInfo:
        url = self.url_for(source_ip)
        try:
            resp = self.session.get(url, auth=self.auth, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as e:
            raise EnrichmentFailure(f'request to {url} failed: {e}') from e
        except ValueError as e:
            raise EnrichmentFailure(f'invalid JSON from {url}: {e}') from e

        info = parse_device_info(body)
        logger.debug("Enriched %s: type=%s rate_ideal=%s", source_ip, info.device_type, info.ideal_rate)
        return info
