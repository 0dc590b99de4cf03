"""On-disk caches for coordinates, nodes, ways, relations and reverse references."""