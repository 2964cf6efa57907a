"""
Request/reply messages exchanged between workers and the coordinator.

A worker sends a TaskReport describing the task it just finished (or NONE on
first contact) and receives a TaskAssignment telling it what to do next.
Both messages travel as JSON.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from .errors import InvalidTaskAssignment, InvalidTaskReport


class TaskKind(Enum):
    NONE = "none"
    MAP = "map"
    REDUCE = "reduce"
    WAIT = "wait"
    EXIT = "exit"


REPORT_KINDS = (TaskKind.NONE, TaskKind.MAP, TaskKind.REDUCE)


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class TaskReport:
    """Outcome of the worker's previous assignment."""
    kind: TaskKind = TaskKind.NONE
    task_id: int = -1
    # reduce bucket -> intermediate file produced for that bucket (MAP only)
    intermediate_refs: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def none(cls) -> "TaskReport":
        return cls()

    @classmethod
    def map_done(cls, task_id: int, intermediate_refs: Dict[int, str]) -> "TaskReport":
        return cls(TaskKind.MAP, task_id, dict(intermediate_refs))

    @classmethod
    def reduce_done(cls, task_id: int) -> "TaskReport":
        return cls(TaskKind.REDUCE, task_id)

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "task_id": self.task_id,
            "intermediate_refs": {str(k): v for k, v in self.intermediate_refs.items()},
        }

    @classmethod
    def from_dict(cls, d):
        try:
            kind = TaskKind(d.get("kind", TaskKind.NONE.value))
            refs = {int(k): v for k, v in (d.get("intermediate_refs") or {}).items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise InvalidTaskReport(f"Malformed task report: {e}") from e

        task_id = d.get("task_id", -1)
        if not _is_int(task_id):
            raise InvalidTaskReport(f"Malformed task report: task_id {task_id!r} is not an integer")
        for bucket, ref in refs.items():
            if not isinstance(ref, str):
                raise InvalidTaskReport(
                    f"Malformed task report: reference for bucket {bucket} is not a string")
        return cls(kind, task_id, refs)


@dataclass
class TaskAssignment:
    """What the coordinator wants the worker to do next."""
    kind: TaskKind
    task_id: int = -1
    input_refs: List[str] = field(default_factory=list)
    n_reduce: int = 0

    @classmethod
    def wait(cls) -> "TaskAssignment":
        return cls(TaskKind.WAIT)

    @classmethod
    def exit(cls) -> "TaskAssignment":
        return cls(TaskKind.EXIT)

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "task_id": self.task_id,
            "input_refs": list(self.input_refs),
            "n_reduce": self.n_reduce,
        }

    @classmethod
    def from_dict(cls, d):
        try:
            return cls(
                kind=TaskKind(d["kind"]),
                task_id=d.get("task_id", -1),
                input_refs=list(d.get("input_refs", [])),
                n_reduce=d.get("n_reduce", 0),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTaskAssignment(f"Malformed task assignment: {e!r}") from e


def encode(message: Any) -> bytes:
    payload = message.to_dict() if hasattr(message, "to_dict") else message
    return json.dumps(payload).encode("utf-8")


def decode(data: bytes) -> Dict[str, Any]:
    try:
        payload = json.loads(data.decode("utf-8")) if data else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidTaskReport(f"Undecodable payload: {e}") from e
    if not isinstance(payload, dict):
        raise InvalidTaskReport("Payload must be a JSON object")
    return payload


def decode_report(data: bytes) -> TaskReport:
    return TaskReport.from_dict(decode(data))


def decode_assignment(data: bytes) -> TaskAssignment:
    return TaskAssignment.from_dict(decode(data))
