"""
MapReduce Master Server

This is the coordinator process that:
1. Builds the task scheduler from the job's input files
2. Serves RequestTask / IsJobComplete to workers over gRPC
3. Exposes an HTTP status endpoint for the dashboard
4. Shuts down once every map and reduce task has been reported
"""

import argparse
import json
import logging
import sys
import threading
import time
from concurrent import futures
from datetime import datetime
from http.server import BaseHTTPRequestHandler, HTTPServer

import grpc

from mrcoord.common import config
from mrcoord.common.errors import ConfigurationError, InvalidTaskReport
from mrcoord.common.messages import decode_report
from mrcoord.common.service import add_coordinator_servicer_to_server
from mrcoord.utils.log import configure_logging

from .scheduler import TaskScheduler

logger = logging.getLogger(__name__)


class CoordinatorServicer:
    """gRPC front end for a TaskScheduler."""

    def __init__(self, scheduler: TaskScheduler):
        self.scheduler = scheduler

    def RequestTask(self, request, context):
        """Record the worker's report and hand back its next assignment."""
        try:
            report = decode_report(request)
            return self.scheduler.request_task(report)
        except InvalidTaskReport as e:
            logger.warning("Rejected task report from %s: %s", context.peer(), e)
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(e))

    def IsJobComplete(self, request, context):
        return {'done': self.scheduler.is_job_complete()}


def start_server(scheduler, port=config.DEFAULT_PORT, host='[::]', max_workers=10):
    """Start the gRPC server. Returns (server, bound_port)."""
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers))
    add_coordinator_servicer_to_server(CoordinatorServicer(scheduler), server)
    bound_port = server.add_insecure_port(f'{host}:{port}')
    server.start()
    logger.info("Master server started on port %d", bound_port)
    return server, bound_port


def create_status_handler(scheduler):
    class StatusHandler(BaseHTTPRequestHandler):
        def log_message(self, format, *args):
            pass  # Suppress HTTP logging

        def do_GET(self):
            if self.path not in ('/status', '/api/status'):
                self.send_response(404)
                self.end_headers()
                return

            status_data = scheduler.get_job_progress()
            status_data['last_update'] = datetime.now().isoformat()
            body = json.dumps(status_data).encode()

            self.send_response(200)
            self.send_header('Content-Type', 'application/json')
            self.send_header('Access-Control-Allow-Origin', '*')
            self.send_header('Content-Length', str(len(body)))
            self.end_headers()
            self.wfile.write(body)

    return StatusHandler


def start_status_server(scheduler, http_port=config.DEFAULT_HTTP_PORT, host='0.0.0.0'):
    """Serve the job progress snapshot over HTTP from a daemon thread."""
    http_server = HTTPServer((host, http_port), create_status_handler(scheduler))
    thread = threading.Thread(target=http_server.serve_forever, daemon=True)
    thread.start()
    logger.info("HTTP status server started on port %d", http_server.server_address[1])
    return http_server


def serve(input_files, n_reduce=config.DEFAULT_N_REDUCE, port=config.DEFAULT_PORT,
          http_port=config.DEFAULT_HTTP_PORT, task_timeout=config.TASK_TIMEOUT,
          poll_interval=1.0, grace_period=2.0):
    """Run a job to completion.

    Args:
        input_files: Input splits, one map task each
        n_reduce: Number of reduce tasks (R)
        port: gRPC server port
        http_port: HTTP status port (None disables the endpoint)
        task_timeout: Seconds before an unreported task is handed out again
        poll_interval: How often to check for job completion
        grace_period: Time left for workers to collect their EXIT reply

    Returns:
        The scheduler, in its final state
    """
    scheduler = TaskScheduler(input_files, n_reduce, task_timeout=task_timeout)
    server, _ = start_server(scheduler, port)
    http_server = None

    try:
        if http_port is not None:
            http_server = start_status_server(scheduler, http_port)
        while not scheduler.is_job_complete():
            time.sleep(poll_interval)
        logger.info("MapReduce job complete")
        time.sleep(grace_period)
    except KeyboardInterrupt:
        logger.info("Shutting down master server...")
    finally:
        if http_server is not None:
            http_server.shutdown()
            http_server.server_close()
        server.stop(0)

    return scheduler


def main(argv=None):
    parser = argparse.ArgumentParser(description='MapReduce Master Server')
    parser.add_argument('inputs', nargs='+',
                        help='Input files, one map task per file')
    parser.add_argument('--reduce-tasks', '-r', type=int, default=config.DEFAULT_N_REDUCE,
                        help='Number of reduce tasks (R)')
    parser.add_argument('--port', '-p', type=int, default=config.DEFAULT_PORT,
                        help='gRPC server port')
    parser.add_argument('--http-port', type=int, default=config.DEFAULT_HTTP_PORT,
                        help='HTTP status endpoint port')
    parser.add_argument('--task-timeout', type=float, default=config.TASK_TIMEOUT,
                        help='Seconds before an unreported task is reassigned')
    parser.add_argument('--log-level', default=None,
                        help='Logging level (default: $MRCOORD_LOG_LEVEL or INFO)')
    args = parser.parse_args(argv)

    configure_logging(config.log_level(args.log_level))

    try:
        serve(
            args.inputs,
            n_reduce=args.reduce_tasks,
            port=args.port,
            http_port=args.http_port,
            task_timeout=args.task_timeout,
        )
    except ConfigurationError as e:
        logger.error("Cannot start job: %s", e)
        sys.exit(1)


if __name__ == '__main__':
    main()
