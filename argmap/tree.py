"""Project the argument graph onto an indentable forest for list display."""

from dataclasses import dataclass, field

from argmap.models import Edge, Node


@dataclass
class TreeItem:
    node: Node
    depth: int
    cross_link_count: int = 0      # parent links not used for placement
    collapsed: bool = False
    descendant_count: int = 0
    children: list["TreeItem"] = field(default_factory=list)


def build_forest(
    nodes: list[Node],
    edges: list[Edge],
    collapsed: frozenset[str] | set[str] = frozenset(),
) -> list[TreeItem]:
    """Convert the graph into a rooted forest.

    Roots are nodes with no outgoing edge, in node order. Children of a node
    are the sources of edges pointing at it, in edge order. Each node is
    placed once, under the first parent through which the depth-first walk
    reaches it; its other parents only show up in ``cross_link_count``.
    Nodes not reachable from any root are placed as roots afterwards.

    Raises:
        RuntimeError: If an edge references a node that is not in ``nodes``.
    """
    by_id = {n.id: n for n in nodes}
    children_of: dict[str, list[str]] = {n.id: [] for n in nodes}
    parents_of: dict[str, list[str]] = {n.id: [] for n in nodes}
    for edge in edges:
        if edge.source not in by_id or edge.target not in by_id:
            raise RuntimeError(
                f"Edge {edge.id} references a missing node ({edge.source} -> {edge.target})"
            )
        children_of[edge.target].append(edge.source)
        parents_of[edge.source].append(edge.target)

    placed: set[str] = set()

    def place(node_id: str, tree_parent: str | None, depth: int) -> TreeItem:
        placed.add(node_id)
        item = TreeItem(
            node=by_id[node_id],
            depth=depth,
            cross_link_count=sum(1 for p in parents_of[node_id] if p != tree_parent),
            collapsed=node_id in collapsed,
        )
        for child_id in children_of[node_id]:
            if child_id in placed:
                continue
            child = place(child_id, node_id, depth + 1)
            item.children.append(child)
            item.descendant_count += 1 + child.descendant_count
        return item

    forest: list[TreeItem] = []
    for node in nodes:
        if not parents_of[node.id] and node.id not in placed:
            forest.append(place(node.id, None, 0))

    # Only reachable through a cycle or from a node that is itself unreached.
    for node in nodes:
        if node.id not in placed:
            forest.append(place(node.id, None, 0))

    return forest


def visible_rows(forest: list[TreeItem]) -> list[TreeItem]:
    """Pre-order rows for the list view, hiding children of collapsed items."""
    rows: list[TreeItem] = []

    def walk(items: list[TreeItem]) -> None:
        for item in items:
            rows.append(item)
            if not item.collapsed:
                walk(item.children)

    walk(forest)
    return rows


def toggle_collapsed(collapsed: frozenset[str], node_id: str) -> frozenset[str]:
    if node_id in collapsed:
        return collapsed - {node_id}
    return collapsed | {node_id}
