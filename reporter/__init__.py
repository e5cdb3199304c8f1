"""
Reporter Package
================

Listens on the local network for devices announcing themselves over UDP,
records each new sender exactly once, optionally enriches it over HTTP and
streams the detections to live subscribers.
"""

from . import capture, preprocessing, detection, utils, api
