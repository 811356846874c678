"""The demo tree a fresh workspace starts with: one root, two subtasks, four todos."""

from graph.history import GraphState
from models.graph import EdgeStyle, NodeData, TaskEdge, TaskNode

DEMO_ROOT_ID = "root-1"


def _node(node_id: str, label: str, level: int, slot: int) -> TaskNode:
    completed = False if level == 2 else None
    return TaskNode(
        id=node_id,
        data=NodeData(label=label, level=level, slot=slot, completed=completed),
    )


def create_initial_graph(edge_style: EdgeStyle | None = None) -> GraphState:
    """Build the unpositioned 7-node demo graph."""
    style = edge_style or EdgeStyle()
    nodes = [
        _node(DEMO_ROOT_ID, "Root Task", 0, 0),
        _node("subtask-1", "Subtask 1", 1, 0),
        _node("subtask-2", "Subtask 2", 1, 1),
        _node("todo-1-1", "Todo 1", 2, 0),
        _node("todo-1-2", "Todo 2", 2, 1),
        _node("todo-2-1", "Todo 1", 2, 2),
        _node("todo-2-2", "Todo 2", 2, 3),
    ]
    links = [
        ("edge-root-subtask1", DEMO_ROOT_ID, "subtask-1"),
        ("edge-root-subtask2", DEMO_ROOT_ID, "subtask-2"),
        ("edge-subtask1-todo1", "subtask-1", "todo-1-1"),
        ("edge-subtask1-todo2", "subtask-1", "todo-1-2"),
        ("edge-subtask2-todo1", "subtask-2", "todo-2-1"),
        ("edge-subtask2-todo2", "subtask-2", "todo-2-2"),
    ]
    edges = [
        TaskEdge(id=edge_id, source=source, target=target, style=style.model_copy())
        for edge_id, source, target in links
    ]
    return GraphState(nodes=nodes, edges=edges)
