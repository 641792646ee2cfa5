"""docgraph: selector-queryable graphs of typed items over JSON documents."""

from docgraph.core.graph import DocGraph
from docgraph.items.kinds import ItemKind

__all__ = ["DocGraph", "ItemKind"]
