import re


class MapPhase:
    """Runs a user map function over one input split and buckets its output"""

    def __init__(self, map_function, partitioner):
        """
        Args:
            map_function: User-defined map function(filename, contents) -> [(k, v), ...]
            partitioner: Partitioner deciding which reduce bucket each key lands in
        """
        self.map_function = map_function
        self.partitioner = partitioner

    def execute(self, filename, contents):
        """Apply the map function and split its pairs by reduce bucket

        Returns:
            List with one entry per bucket, each a list of (key, value) pairs
            in emission order. Buckets with no keys are empty lists.
        """
        buckets = [[] for _ in range(self.partitioner.num_partitions)]

        for key, value in self.map_function(filename, contents):
            buckets[self.partitioner.get_partition(key)].append((key, value))

        return buckets


WORD_RE = re.compile(r'[^\W\d_]+')


def word_count_map(filename, contents):
    """Map function for word count: emit (word, "1") for each word"""
    for word in WORD_RE.findall(contents):
        yield (word, "1")
