GraphId = str

DEFAULT_GRAPH_ID = "default"


class ArrayNode:
    """Association of an array with one computation graph."""
    __slots__ = ('_graph_id',)

    def __init__(self, graph_id):
        self._graph_id = graph_id

    @property
    def graph_id(self):
        return self._graph_id

    def __repr__(self):
        return f"ArrayNode(graph_id={self._graph_id!r})"


def as_graph_id_list(graph_ids):
    # A bare str is a single graph id, and iterating it would yield characters.
    if isinstance(graph_ids, str):
        raise TypeError(f"Expected an iterable of graph ids, but got a single graph id {graph_ids!r}")
    return list(graph_ids)
