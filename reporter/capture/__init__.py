from reporter.capture.interfaces import available_interfaces, select_interface
from reporter.capture.scapy_capture import ScapyCapture, build_filter
