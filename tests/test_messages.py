import json

import pytest

from mrcoord.common.errors import InvalidTaskAssignment, InvalidTaskReport
from mrcoord.common.messages import (
    TaskAssignment, TaskKind, TaskReport, decode_assignment, decode_report, encode,
)


def test_report_bucket_keys_become_ints():
    wire = encode(TaskReport.map_done(3, {0: "mr-3-0", 7: "mr-3-7"}))
    payload = json.loads(wire)
    assert payload["intermediate_refs"] == {"0": "mr-3-0", "7": "mr-3-7"}

    report = decode_report(wire)
    assert report.kind == TaskKind.MAP
    assert report.task_id == 3
    assert report.intermediate_refs == {0: "mr-3-0", 7: "mr-3-7"}


def test_empty_payload_is_a_none_report():
    assert decode_report(b"") == TaskReport.none()
    assert decode_report(b"{}") == TaskReport.none()


@pytest.mark.parametrize("payload", [
    b"not json",
    b"[1, 2]",
    b'{"kind": "bogus"}',
    b'{"kind": "map", "task_id": "abc"}',
    b'{"kind": "map", "task_id": 0, "intermediate_refs": {"x": "f"}}',
    b'{"kind": "map", "task_id": 0.9}',
    b'{"kind": "map", "task_id": true}',
    b'{"kind": "map", "task_id": 0, "intermediate_refs": {"0": ["x", 1]}}',
    b'{"kind": "map", "task_id": 0, "intermediate_refs": {"0": 7}}',
])
def test_malformed_reports_are_rejected(payload):
    with pytest.raises(InvalidTaskReport):
        decode_report(payload)


def test_assignment_from_wire():
    wire = encode(TaskAssignment(TaskKind.MAP, 4, ["pg-4.txt"], 10))
    assert decode_assignment(wire) == TaskAssignment(TaskKind.MAP, 4, ["pg-4.txt"], 10)
    assert decode_assignment(encode(TaskAssignment.exit())).task_id == -1


@pytest.mark.parametrize("payload", [b"{}", b'{"kind": "bogus"}', b'{"kind": "map", "input_refs": 3}'])
def test_malformed_assignments_are_rejected(payload):
    with pytest.raises(InvalidTaskAssignment):
        decode_assignment(payload)
