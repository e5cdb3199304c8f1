"""HTTP surface of the reporter.

`POST /scan` starts capture, `POST /clear` resets the detection list,
`GET /events` streams detections as Server-Sent Events, `GET /export`
downloads the current list as CSV and `GET /status` reports service state.
"""
import csv
import io
import logging

from flask import Flask, Response, jsonify

from reporter.errors import CaptureAlreadyRunning, NoInterfaceFound, SubscriptionClosed
from reporter.utils import config as cfg

logger = logging.getLogger(__name__)

CSV_HEADER = ['ID', 'IP', 'MAC', 'Type', 'Port']


def sse_stream(broadcaster, sub, keepalive: float):
    """Yield SSE frames for `sub` until it is closed or the client goes away."""
    try:
        yield ': connected\n\n'
        while True:
            try:
                payload = sub.get(timeout=keepalive)
            except SubscriptionClosed:
                return
            if payload is None:
                yield ': keepalive\n\n'
            else:
                yield f'data: {payload}\n\n'
    finally:
        broadcaster.unsubscribe(sub)


def events_to_csv(events) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for ev in events:
        kind = f'{ev.device_type} - {ev.ideal_rate:g} TH' if ev.enriched else ''
        writer.writerow([ev.id, ev.source_ip, ev.source_mac, kind, ev.destination_port])
    return buf.getvalue()


def create_app(service=None):
    if service is None:
        from reporter.detection.service import DetectionService
        service = DetectionService()

    app = Flask(__name__)
    app.config['DETECTION_SERVICE'] = service
    keepalive = float((cfg.get('broadcast') or {}).get('keepalive', 15.0))

    @app.route('/scan', methods=['POST'])
    def scan_route():
        try:
            iface = service.start()
        except CaptureAlreadyRunning as e:
            return jsonify({'error': str(e)}), 409
        except NoInterfaceFound as e:
            logger.error("Cannot start capture: %s", e)
            return jsonify({'error': str(e)}), 503
        return jsonify({'status': 'Sniffing started', 'interface': iface}), 202

    @app.route('/clear', methods=['POST'])
    def clear_route():
        service.clear()
        return jsonify({'status': 'IP list cleared'}), 200

    @app.route('/events', methods=['GET'])
    def events_route():
        broadcaster = service.broadcaster
        sub = broadcaster.subscribe()
        resp = Response(
            sse_stream(broadcaster, sub, keepalive),
            mimetype='text/event-stream',
            headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
        )
        resp.call_on_close(lambda: broadcaster.unsubscribe(sub))
        return resp

    @app.route('/export', methods=['GET'])
    def export_route():
        return Response(
            events_to_csv(service.ledger.events()),
            mimetype='text/csv',
            headers={'Content-Disposition': 'attachment; filename=rep0rter_data.csv'},
        )

    @app.route('/status', methods=['GET'])
    def status_route():
        return jsonify(service.status())

    return app
