from typing import Any, Callable, Dict

from langgraph.graph import END, StateGraph

from app.graph.state import TurnState

# order is the turn protocol; each step sees everything the previous ones wrote
TURN_STEPS = (
    "record_user",
    "extract",
    "merge",
    "resolve_stage",
    "respond",
    "plan",
    "materialize",
    "record_advisor",
)


def build_turn_graph(nodes: Dict[str, Callable[[TurnState], Any]]):
    missing = [name for name in TURN_STEPS if name not in nodes]
    if missing:
        raise ValueError(f"turn graph missing steps: {missing}")

    graph = StateGraph(TurnState)

    for name in TURN_STEPS:
        graph.add_node(name, nodes[name])

    graph.set_entry_point(TURN_STEPS[0])

    for current, following in zip(TURN_STEPS, TURN_STEPS[1:]):
        graph.add_edge(current, following)
    graph.add_edge(TURN_STEPS[-1], END)

    return graph.compile()
