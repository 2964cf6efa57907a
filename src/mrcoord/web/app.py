"""
MapReduce Web Dashboard

Live view of the coordinator's job progress: map and reduce task counts,
current phase and reassignments. Polls the master's HTTP status endpoint.

Usage:
    mrcoord-dashboard --master-url http://localhost:8080/status
    # Dashboard at http://localhost:5000
"""

import argparse
import json
import logging
import threading
import time
import urllib.error
import urllib.request
from datetime import datetime

from flask import Flask, Response, jsonify, render_template_string

from mrcoord.common import config
from mrcoord.utils.log import configure_logging

logger = logging.getLogger(__name__)

INDEX_HTML = """<!doctype html>
<html>
<head><title>mrcoord</title></head>
<body>
<h1>MapReduce job</h1>
<pre id="status">{{ status }}</pre>
<script>
  const source = new EventSource("/api/stream");
  source.onmessage = (e) => {
    document.getElementById("status").textContent =
      JSON.stringify(JSON.parse(e.data), null, 2);
  };
</script>
</body>
</html>
"""


def empty_state():
    return {
        'map': {'pending': 0, 'running': 0, 'completed': 0, 'total': 0},
        'reduce': {'pending': 0, 'running': 0, 'completed': 0, 'total': 0},
        'phase': 'unknown',
        'job_complete': False,
        'reassignments': 0,
        'last_update': None,
        'connected': False,
    }


class StatusPoller:
    """Keeps the latest status snapshot fetched from the master."""

    def __init__(self, status_url, interval=1.0, timeout=2.0):
        self.status_url = status_url
        self.interval = interval
        self.timeout = timeout
        self.state = empty_state()
        self.lock = threading.Lock()
        self.running = False

    def fetch(self):
        req = urllib.request.Request(self.status_url, headers={'Accept': 'application/json'})
        with urllib.request.urlopen(req, timeout=self.timeout) as response:
            return json.loads(response.read().decode())

    def poll(self):
        try:
            data = self.fetch()
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.debug("Master status unavailable at %s: %s", self.status_url, e)
            with self.lock:
                self.state['connected'] = False
            return

        with self.lock:
            for key in ('map', 'reduce', 'phase', 'job_complete', 'reassignments'):
                if key in data:
                    self.state[key] = data[key]
            self.state['last_update'] = datetime.now().isoformat()
            self.state['connected'] = True

    def snapshot(self):
        with self.lock:
            return json.loads(json.dumps(self.state))

    def start(self):
        self.running = True

        def polling_loop():
            while self.running:
                self.poll()
                time.sleep(self.interval)

        threading.Thread(target=polling_loop, daemon=True).start()

    def stop(self):
        self.running = False


def create_app(poller, stream_interval=0.5, keepalive_interval=15.0):
    app = Flask(__name__)

    @app.route('/')
    def index():
        return render_template_string(INDEX_HTML, status=json.dumps(poller.snapshot(), indent=2))

    @app.route('/api/status')
    def get_status():
        return jsonify(poller.snapshot())

    @app.route('/api/stream')
    def stream():
        """Server-Sent Events for live updates."""
        def generate():
            last_state = None
            last_sent = time.monotonic()
            while True:
                current = json.dumps(poller.snapshot())
                if current != last_state:
                    yield f"data: {current}\n\n"
                    last_state = current
                    last_sent = time.monotonic()
                elif time.monotonic() - last_sent >= keepalive_interval:
                    # Comment line; a write to a closed connection ends the stream.
                    yield ": keepalive\n\n"
                    last_sent = time.monotonic()
                time.sleep(stream_interval)

        return Response(generate(), mimetype='text/event-stream')

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(description='MapReduce Web Dashboard')
    parser.add_argument('--master-url', default=None,
                        help='Master status URL (default: $MASTER_HTTP_URL)')
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=5000)
    parser.add_argument('--log-level', default=None)
    args = parser.parse_args(argv)

    configure_logging(config.log_level(args.log_level))

    poller = StatusPoller(config.status_url(args.master_url))
    poller.start()
    app = create_app(poller)

    logger.info("MapReduce Dashboard - http://localhost:%d", args.port)
    app.run(host=args.host, port=args.port, threaded=True)


if __name__ == '__main__':
    main()
