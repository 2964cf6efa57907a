import json
import os

from mrcoord.framework.mapper import word_count_map
from mrcoord.utils.partitioner import Partitioner, ihash
from mrcoord.worker.executor import TaskExecutor, load_plugin


def test_ihash_matches_fnv1a():
    # FNV-1a 32-bit of "a" is 0xe40c292c; masked to 31 bits.
    assert ihash("a") == 0xe40c292c & 0x7fffffff
    assert ihash("") == 0x811c9dc5 & 0x7fffffff


def test_partitioner_is_stable_and_in_range():
    p = Partitioner(7)
    for key in ("apple", "banana", "cherry", "", "ünïcode"):
        bucket = p.get_partition(key)
        assert 0 <= bucket < 7
        assert bucket == p.get_partition(key)


def test_word_count_map_splits_on_non_letters():
    pairs = list(word_count_map("f", "Hello, world! hello 42 it's"))
    assert pairs == [("Hello", "1"), ("world", "1"), ("hello", "1"), ("it", "1"), ("s", "1")]


def test_map_writes_one_file_per_nonempty_bucket(tmp_path):
    input_path = tmp_path / "in.txt"
    input_path.write_text("the cat the dog the end", encoding="utf-8")
    executor = TaskExecutor(work_dir=str(tmp_path / "work"))

    file_paths = executor.execute_map(3, str(input_path), 4)

    partitioner = Partitioner(4)
    expected_buckets = {partitioner.get_partition(w) for w in ("the", "cat", "dog", "end")}
    assert set(file_paths) == expected_buckets
    for bucket, path in file_paths.items():
        assert os.path.basename(path) == f"mr-3-{bucket}"
        with open(path, encoding="utf-8") as f:
            for line in f:
                pair = json.loads(line)
                assert partitioner.get_partition(pair["key"]) == bucket
    assert sorted(os.listdir(tmp_path / "work")) == sorted(
        f"mr-3-{b}" for b in expected_buckets)


def test_reduce_groups_sorts_and_writes_output(tmp_path):
    work = tmp_path / "work"
    executor = TaskExecutor(work_dir=str(work))
    first = tmp_path / "in-0.txt"
    second = tmp_path / "in-1.txt"
    first.write_text("b a b", encoding="utf-8")
    second.write_text("c b", encoding="utf-8")

    paths = list(executor.execute_map(0, str(first), 1).values())
    paths += list(executor.execute_map(1, str(second), 1).values())
    output_path = executor.execute_reduce(0, paths)

    assert os.path.basename(output_path) == "mr-out-0"
    with open(output_path, encoding="utf-8") as f:
        assert f.read() == "a 1\nb 3\nc 1\n"


def test_reduce_with_no_input_writes_empty_output(tmp_path):
    executor = TaskExecutor(work_dir=str(tmp_path))
    output_path = executor.execute_reduce(5, [])
    with open(output_path, encoding="utf-8") as f:
        assert f.read() == ""


def test_load_plugin(tmp_path):
    plugin = tmp_path / "lengths.py"
    plugin.write_text(
        "def Map(filename, contents):\n"
        "    return [(str(len(w)), w) for w in contents.split()]\n"
        "\n"
        "def Reduce(key, values):\n"
        "    return ','.join(sorted(values))\n",
        encoding="utf-8",
    )
    map_function, reduce_function = load_plugin(str(plugin))
    executor = TaskExecutor(map_function, reduce_function, work_dir=str(tmp_path / "work"))
    source = tmp_path / "in.txt"
    source.write_text("ox cat ab dog", encoding="utf-8")

    paths = list(executor.execute_map(0, str(source), 1).values())
    output_path = executor.execute_reduce(0, paths)
    with open(output_path, encoding="utf-8") as f:
        assert f.read() == "2 ab,ox\n3 cat,dog\n"
