class ReducePhase:
    """Applies a user reduce function to each key group, in key order"""

    def __init__(self, reduce_function):
        self.reduce_function = reduce_function

    def execute(self, sorted_data):
        """
        Args:
            sorted_data: List of (key, [values]) tuples, sorted by key

        Returns:
            List of (key, result) tuples in the same order
        """
        return [(key, self.reduce_function(key, values)) for key, values in sorted_data]


def word_count_reduce(word, counts):
    """Reduce function for word count: total occurrences as a string"""
    return str(sum(int(c) for c in counts))
