import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from mrcoord.common.config import TASK_TIMEOUT
from mrcoord.common.errors import ConfigurationError, InvalidTaskReport
from mrcoord.common.messages import REPORT_KINDS, TaskAssignment, TaskKind, TaskReport

logger = logging.getLogger(__name__)


class JobPhase(Enum):
    MAPPING = "mapping"
    REDUCING = "reducing"
    DONE = "done"


@dataclass
class MapTaskRecord:
    task_id: int
    input_ref: str
    assigned_at: Optional[float] = None
    done: bool = False
    attempts: int = 0


@dataclass
class ReduceTaskRecord:
    task_id: int
    intermediate_refs: List[str] = field(default_factory=list)
    assigned_at: Optional[float] = None
    done: bool = False
    attempts: int = 0


class TaskScheduler:
    """Hands out map and reduce tasks to workers that poll for work.

    Based on Google MapReduce paper:
    - One map task per input split, R reduce tasks fixed up front
    - No reduce task is handed out while any map task is unfinished
    - A task held longer than the timeout without a report is presumed
      lost and handed out again (at-least-once dispatch)
    - Completion reports are idempotent: the first one wins, late
      duplicates from a presumed-dead worker are ignored

    Every public method runs under one lock, so a report and the assignment
    that follows it are applied as a single transaction.
    """

    def __init__(self, input_partitions: Sequence[str], n_reduce: int,
                 task_timeout: float = TASK_TIMEOUT,
                 clock: Callable[[], float] = time.monotonic):
        if not input_partitions:
            raise ConfigurationError("A job needs at least one input partition")
        if n_reduce < 1:
            raise ConfigurationError(f"n_reduce must be positive, got {n_reduce}")

        self.n_reduce = n_reduce
        self.task_timeout = task_timeout
        self._clock = clock
        self._lock = threading.Lock()

        self.map_tasks = [MapTaskRecord(i, ref) for i, ref in enumerate(input_partitions)]
        self.reduce_tasks = [ReduceTaskRecord(i) for i in range(n_reduce)]
        self.map_left = len(self.map_tasks)
        self.reduce_left = n_reduce
        self.reassignments = 0

        logger.info("Scheduler initialized with %d map tasks and %d reduce tasks",
                    self.map_left, self.reduce_left)

    def request_task(self, report: TaskReport) -> TaskAssignment:
        """Ingest the worker's report, then pick its next assignment."""
        with self._lock:
            self._validate(report)
            self._ingest(report)
            now = self._clock()

            if self.map_left > 0:
                record = self._next_dispatchable(self.map_tasks, now)
                if record is None:
                    return TaskAssignment.wait()
                self._dispatch(record, "map", now)
                return TaskAssignment(TaskKind.MAP, record.task_id,
                                      [record.input_ref], self.n_reduce)

            if self.reduce_left > 0:
                record = self._next_dispatchable(self.reduce_tasks, now)
                if record is None:
                    return TaskAssignment.wait()
                self._dispatch(record, "reduce", now)
                return TaskAssignment(TaskKind.REDUCE, record.task_id,
                                      list(record.intermediate_refs))

            return TaskAssignment.exit()

    def is_job_complete(self) -> bool:
        with self._lock:
            return self.map_left == 0 and self.reduce_left == 0

    @property
    def phase(self) -> JobPhase:
        with self._lock:
            return self._phase()

    def _phase(self):
        if self.map_left > 0:
            return JobPhase.MAPPING
        if self.reduce_left > 0:
            return JobPhase.REDUCING
        return JobPhase.DONE

    def _validate(self, report):
        if report.kind not in REPORT_KINDS:
            raise InvalidTaskReport(f"Workers cannot report {report.kind.value} tasks")
        if report.kind == TaskKind.MAP:
            if not 0 <= report.task_id < len(self.map_tasks):
                raise InvalidTaskReport(f"Unknown map task {report.task_id}")
            for bucket in report.intermediate_refs:
                if not 0 <= bucket < self.n_reduce:
                    raise InvalidTaskReport(
                        f"Map task {report.task_id} reported bucket {bucket}, "
                        f"expected 0..{self.n_reduce - 1}")
        elif report.kind == TaskKind.REDUCE:
            if not 0 <= report.task_id < len(self.reduce_tasks):
                raise InvalidTaskReport(f"Unknown reduce task {report.task_id}")

    def _ingest(self, report):
        if report.kind == TaskKind.MAP:
            record = self.map_tasks[report.task_id]
            if record.done:
                logger.info("Duplicate completion for map task %d (ignored)", record.task_id)
                return
            record.done = True
            self.map_left -= 1
            for bucket, ref in sorted(report.intermediate_refs.items()):
                if ref:
                    self.reduce_tasks[bucket].intermediate_refs.append(ref)
            logger.info("Map task %d completed (%d left)", record.task_id, self.map_left)
            if self.map_left == 0:
                logger.info("Map phase complete, starting reduce phase")

        elif report.kind == TaskKind.REDUCE:
            record = self.reduce_tasks[report.task_id]
            if record.done:
                logger.info("Duplicate completion for reduce task %d (ignored)", record.task_id)
                return
            record.done = True
            self.reduce_left -= 1
            logger.info("Reduce task %d completed (%d left)", record.task_id, self.reduce_left)
            if self.reduce_left == 0:
                logger.info("Reduce phase complete, job finished")

    def _next_dispatchable(self, records, now):
        # Lowest identity first; records are mutated in place by the caller.
        for record in records:
            if record.done:
                continue
            if record.assigned_at is None or now - record.assigned_at >= self.task_timeout:
                return record
        return None

    def _dispatch(self, record, task_type, now):
        if record.assigned_at is not None:
            self.reassignments += 1
            logger.info("%s task %d not reported after %.1fs, reassigning",
                        task_type.capitalize(), record.task_id, now - record.assigned_at)
        record.assigned_at = now
        record.attempts += 1
        logger.info("Assigned %s task %d (attempt %d)", task_type, record.task_id, record.attempts)

    def get_job_progress(self):
        """Get current job progress statistics."""
        with self._lock:
            now = self._clock()
            return {
                'map': self._phase_counts(self.map_tasks, now),
                'reduce': self._phase_counts(self.reduce_tasks, now),
                'phase': self._phase().value,
                'job_complete': self.map_left == 0 and self.reduce_left == 0,
                'reassignments': self.reassignments,
            }

    def _phase_counts(self, records, now):
        completed = sum(1 for r in records if r.done)
        running = sum(
            1 for r in records
            if not r.done and r.assigned_at is not None
            and now - r.assigned_at < self.task_timeout
        )
        return {
            'total': len(records),
            'completed': completed,
            'running': running,
            'pending': len(records) - completed - running,
        }
