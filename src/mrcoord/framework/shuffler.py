import json
from collections import defaultdict


class ShufflePhase:
    """Collects one bucket's intermediate pairs from every map task"""

    def fetch_and_group(self, intermediate_paths):
        """Read JSON-lines intermediate files and group values by key

        Args:
            intermediate_paths: Files written by map tasks for this bucket

        Returns:
            Dict of {key: [value1, value2, ...]}
        """
        grouped_data = defaultdict(list)

        for path in intermediate_paths:
            with open(path, 'r', encoding='utf-8') as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    pair = json.loads(line)
                    grouped_data[pair['key']].append(pair['value'])

        return dict(grouped_data)

    def sort_by_key(self, grouped_data):
        return sorted(grouped_data.items())
