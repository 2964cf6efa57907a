FNV32_OFFSET = 0x811c9dc5
FNV32_PRIME = 0x01000193


def ihash(key):
    """32-bit FNV-1a hash of str(key), masked to a non-negative int."""
    h = FNV32_OFFSET
    for byte in str(key).encode('utf-8'):
        h ^= byte
        h = (h * FNV32_PRIME) & 0xffffffff
    return h & 0x7fffffff


class Partitioner:
    """Hash-based partitioning of intermediate keys into reduce buckets"""

    def __init__(self, num_partitions):
        if num_partitions < 1:
            raise ValueError(f"num_partitions must be positive, got {num_partitions}")
        self.num_partitions = num_partitions

    def get_partition(self, key):
        """Bucket for key: ihash(key) mod R"""
        return ihash(key) % self.num_partitions
