import importlib.util
import logging

from mrcoord.framework.mapper import MapPhase, word_count_map
from mrcoord.framework.reducer import ReducePhase, word_count_reduce
from mrcoord.framework.shuffler import ShufflePhase
from mrcoord.utils.partitioner import Partitioner

from .intermediate import IntermediateFileManager

logger = logging.getLogger(__name__)


class TaskExecutor:
    """Executes map and reduce tasks handed out by the coordinator.

    Based on Google MapReduce paper:
    - Map tasks: Apply map function, partition output into R intermediate files
    - Reduce tasks: Read one bucket from every map task, sort, apply reduce function
    """

    def __init__(self, map_function=None, reduce_function=None, work_dir='./mr-tmp'):
        """
        Args:
            map_function: User-defined map function (default: word_count_map)
            reduce_function: User-defined reduce function (default: word_count_reduce)
            work_dir: Directory for intermediate files and reduce output
        """
        self.map_function = map_function or word_count_map
        self.reduce_function = reduce_function or word_count_reduce
        self.reduce_phase = ReducePhase(self.reduce_function)
        self.shuffle_phase = ShufflePhase()
        self.files = IntermediateFileManager(base_dir=work_dir)

    def execute_map(self, task_id, input_path, n_reduce):
        """Execute a map task.

        Returns:
            dict: {bucket: file_path} for the buckets this split produced keys for
        """
        with open(input_path, 'r', encoding='utf-8') as f:
            contents = f.read()

        map_phase = MapPhase(self.map_function, Partitioner(n_reduce))
        buckets = map_phase.execute(input_path, contents)
        file_paths = self.files.write_partitioned_output(task_id, buckets)

        logger.info("Map task %d wrote %d intermediate files", task_id, len(file_paths))
        return file_paths

    def execute_reduce(self, task_id, intermediate_paths):
        """Execute a reduce task, returns the output file path."""
        grouped_data = self.shuffle_phase.fetch_and_group(intermediate_paths)
        sorted_data = self.shuffle_phase.sort_by_key(grouped_data)
        results = self.reduce_phase.execute(sorted_data)
        output_path = self.files.write_output(task_id, results)

        logger.info("Reduce task %d wrote %d keys to %s", task_id, len(results), output_path)
        return output_path


def load_plugin(plugin_path):
    """Load Map and Reduce functions from a plugin file."""
    spec = importlib.util.spec_from_file_location("mrcoord_plugin", plugin_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load plugin from {plugin_path}")
    plugin = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(plugin)

    logger.info("Loaded plugin from %s", plugin_path)
    return plugin.Map, plugin.Reduce
