"""
gRPC wiring for the Coordinator service.

Messages are JSON documents rather than protobufs, so the service is
registered through generic method handlers instead of generated stubs.
"""

import grpc

from .messages import TaskReport, decode, decode_assignment, encode

SERVICE_NAME = 'mrcoord.Coordinator'
REQUEST_TASK = f'/{SERVICE_NAME}/RequestTask'
IS_JOB_COMPLETE = f'/{SERVICE_NAME}/IsJobComplete'


def add_coordinator_servicer_to_server(servicer, server):
    """Register servicer.RequestTask / servicer.IsJobComplete on server.

    RequestTask receives the raw request bytes so that the servicer can
    reject malformed reports with INVALID_ARGUMENT itself.
    """
    handlers = {
        'RequestTask': grpc.unary_unary_rpc_method_handler(
            servicer.RequestTask,
            response_serializer=encode,
        ),
        'IsJobComplete': grpc.unary_unary_rpc_method_handler(
            servicer.IsJobComplete,
            request_deserializer=decode,
            response_serializer=encode,
        ),
    }
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),))


class CoordinatorStub:
    """Client side of the Coordinator service."""

    def __init__(self, channel):
        self.RequestTask = channel.unary_unary(
            REQUEST_TASK,
            request_serializer=encode,
            response_deserializer=decode_assignment,
        )
        self.IsJobComplete = channel.unary_unary(
            IS_JOB_COMPLETE,
            request_serializer=encode,
            response_deserializer=decode,
        )

    def request_task(self, report: TaskReport, timeout=None):
        return self.RequestTask(report, timeout=timeout)

    def is_job_complete(self, timeout=None) -> bool:
        return bool(self.IsJobComplete({}, timeout=timeout).get('done', False))
