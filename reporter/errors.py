"""Exceptions raised across the detection pipeline."""


class ReporterError(Exception):
    pass


class NoInterfaceFound(ReporterError):
    """No interface carries a usable non-loopback IPv4 address."""


class CaptureError(ReporterError):
    """The capture device failed while frames were being read."""


class CaptureOpenError(CaptureError):
    """The capture device could not be opened or the filter could not be set."""


class CaptureAlreadyRunning(ReporterError):
    pass


class DecodeFailure(ReporterError):
    """A frame is missing its Ethernet, IPv4 or UDP layer."""


class EnrichmentFailure(ReporterError):
    """The device info query failed or returned an unusable body."""


class SubscriptionClosed(ReporterError):
    pass
