from reporter.detection.enrichment import DeviceEnricher, parse_device_info
from reporter.detection.ledger import DetectionLedger
from reporter.detection.service import DetectionService
