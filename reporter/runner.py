#!/usr/bin/env python3
"""
Runner: builds the detection service and serves the HTTP API.
"""
import argparse


def main(argv=None):
    parser = argparse.ArgumentParser(description="Listen for device IP reports and stream detections")
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--interface", default=None, help="Capture interface (default: auto select)")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--autostart", action="store_true", help="Start capturing immediately")
    args = parser.parse_args(argv)

    # Import here so the config file is loaded before anything reads it
    from reporter.utils import config as cfg
    from reporter.utils import logger

    logger.configure(args.log_level)
    log = logger.get_logger("reporter.runner")
    if args.config:
        cfg.load(args.config)

    from reporter.api.app import create_app
    from reporter.detection.service import DetectionService
    from reporter.errors import NoInterfaceFound

    service = DetectionService(interface=args.interface)
    if args.autostart:
        try:
            service.start()
        except NoInterfaceFound as e:
            log.error("Capture not started: %s", e)

    http_cfg = cfg.get("http") or {}
    host = args.host or http_cfg.get("host", "0.0.0.0")
    port = args.port or int(http_cfg.get("port", 7070))
    log.info("Starting HTTP server at http://%s:%d ...", host, port)
    create_app(service).run(host=host, port=port, threaded=True)


if __name__ == '__main__':
    main()
