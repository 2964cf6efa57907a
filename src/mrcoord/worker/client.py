import argparse
import logging
import os
import sys
import time

import grpc

from mrcoord.common import config
from mrcoord.common.messages import TaskKind, TaskReport
from mrcoord.common.service import CoordinatorStub
from mrcoord.utils.log import configure_logging

from .executor import TaskExecutor, load_plugin

logger = logging.getLogger(__name__)


class Worker:
    """Worker node that polls the coordinator for tasks and executes them.

    The worker keeps no session with the coordinator: each RequestTask call
    carries the outcome of the previous assignment, and the reply alone
    says what to do next.
    """

    def __init__(self, worker_id, executor, master_address=None,
                 poll_interval=1.0, rpc_timeout=5.0, max_rpc_failures=5):
        self.worker_id = worker_id
        self.executor = executor
        self.master_address = config.master_address(master_address)
        self.poll_interval = poll_interval
        self.rpc_timeout = rpc_timeout
        self.max_rpc_failures = max_rpc_failures

        self.running = True
        self.tasks_completed = 0

        self.channel = grpc.insecure_channel(self.master_address)
        self.stub = CoordinatorStub(self.channel)

        logger.info("Worker %s connecting to %s", worker_id, self.master_address)

    def execute_task(self, assignment):
        """Run one assignment and return the report describing it.

        A failed task is reported as NONE so the coordinator hands it out
        again once the timeout expires.
        """
        try:
            if assignment.kind == TaskKind.MAP:
                file_paths = self.executor.execute_map(
                    assignment.task_id, assignment.input_refs[0], assignment.n_reduce)
                report = TaskReport.map_done(assignment.task_id, file_paths)
            else:
                self.executor.execute_reduce(assignment.task_id, assignment.input_refs)
                report = TaskReport.reduce_done(assignment.task_id)
        except Exception:
            logger.exception("Worker %s failed %s task %d", self.worker_id,
                             assignment.kind.value, assignment.task_id)
            return TaskReport.none()

        self.tasks_completed += 1
        return report

    def run(self):
        """Main worker loop. Returns when the coordinator says EXIT or is gone."""
        report = TaskReport.none()
        failures = 0

        while self.running:
            try:
                assignment = self.stub.request_task(report, timeout=self.rpc_timeout)
            except grpc.RpcError as e:
                failures += 1
                logger.warning("Worker %s failed to request task (%d/%d): %s",
                               self.worker_id, failures, self.max_rpc_failures, e)
                if failures >= self.max_rpc_failures:
                    logger.info("Coordinator unreachable, worker %s exiting", self.worker_id)
                    break
                time.sleep(self.poll_interval)
                continue
            failures = 0

            if assignment.kind == TaskKind.EXIT:
                logger.info("Received exit signal, worker %s shutting down", self.worker_id)
                break
            if assignment.kind == TaskKind.WAIT:
                report = TaskReport.none()
                time.sleep(self.poll_interval)
                continue

            logger.info("Worker %s executing %s task %d", self.worker_id,
                        assignment.kind.value, assignment.task_id)
            report = self.execute_task(assignment)

        self.channel.close()
        logger.info("Worker %s finished after %d tasks", self.worker_id, self.tasks_completed)


def main(argv=None):
    parser = argparse.ArgumentParser(description='MapReduce Worker')
    parser.add_argument('worker_id', nargs='?', default=f'worker-{os.getpid()}')
    parser.add_argument('--master', default=None,
                        help='Coordinator address (default: $MASTER_ADDRESS or localhost:50051)')
    parser.add_argument('--plugin', default=None,
                        help='Python file defining Map(filename, contents) and Reduce(key, values)')
    parser.add_argument('--workdir', default='.',
                        help='Directory for intermediate and output files')
    parser.add_argument('--log-level', default=None)
    args = parser.parse_args(argv)

    configure_logging(config.log_level(args.log_level))

    map_function = reduce_function = None
    if args.plugin:
        try:
            map_function, reduce_function = load_plugin(args.plugin)
        except (ImportError, OSError, AttributeError) as e:
            logger.error("Failed to load plugin %s: %s", args.plugin, e)
            sys.exit(1)

    executor = TaskExecutor(map_function, reduce_function, work_dir=args.workdir)
    worker = Worker(args.worker_id, executor, master_address=args.master)
    try:
        worker.run()
    except KeyboardInterrupt:
        logger.info("Worker %s interrupted", args.worker_id)
        worker.channel.close()


if __name__ == '__main__':
    main()
