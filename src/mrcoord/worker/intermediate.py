import json
import os
import tempfile


def intermediate_filename(map_task, reduce_task):
    return f"mr-{map_task}-{reduce_task}"


def output_filename(reduce_task):
    return f"mr-out-{reduce_task}"


class IntermediateFileManager:
    """Manages map outputs and reduce results on local disk

    Every file is written to a temporary name in the same directory and
    renamed into place, so a reader never sees a partially written file and
    a re-executed task simply replaces the previous attempt's output.
    """

    def __init__(self, base_dir='./intermediate'):
        self.base_dir = base_dir
        os.makedirs(base_dir, exist_ok=True)

    def write_partitioned_output(self, task_id, buckets):
        """Write one JSON-lines file per non-empty bucket

        Args:
            task_id: ID of the map task
            buckets: List of [(key, value), ...], one per reduce bucket

        Returns:
            Dict of {bucket: file_path} for the buckets that received keys
        """
        file_paths = {}

        for bucket, pairs in enumerate(buckets):
            if not pairs:
                continue
            lines = [json.dumps({'key': k, 'value': v}) for k, v in pairs]
            path = os.path.join(self.base_dir, intermediate_filename(task_id, bucket))
            self._atomic_write(path, lines)
            file_paths[bucket] = path

        return file_paths

    def write_output(self, task_id, results):
        """Write reduce results as 'key value' lines, returns the path"""
        path = os.path.join(self.base_dir, output_filename(task_id))
        self._atomic_write(path, [f"{key} {value}" for key, value in results])
        return path

    def _atomic_write(self, path, lines):
        fd, temp_path = tempfile.mkstemp(prefix=os.path.basename(path) + '-', dir=self.base_dir)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                for line in lines:
                    f.write(line)
                    f.write('\n')
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

