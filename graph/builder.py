"""Graph assembly — builds and compiles the registration wizard graph."""

from functools import partial

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import START, StateGraph

from graph.form_nodes import (
    failed_node,
    landing_node,
    personal_node,
    review_node,
    submit_node,
    success_node,
    vehicle_node,
)
from graph.router import STEP_NODE_MAP, router
from graph.state import RegistrationState, Step
from store.records import RecordStore


def _bind(func, name: str, records: RecordStore):
    node_func = partial(func, records=records)
    # Partial functions don't have __name__; attach the node name
    node_func.__name__ = name
    return node_func


def build_graph(records: RecordStore, checkpointer=None):
    """
    Assemble the wizard graph.
    Returns a compiled graph that pauses at every waiting step.
    """
    builder = StateGraph(RegistrationState)

    # ── Register nodes ──────────────────────────────────────────────
    builder.add_node(STEP_NODE_MAP[Step.LANDING.value], _bind(landing_node, "landing", records))
    builder.add_node(STEP_NODE_MAP[Step.PERSONAL.value], personal_node)
    builder.add_node(STEP_NODE_MAP[Step.VEHICLE.value], vehicle_node)
    builder.add_node(STEP_NODE_MAP[Step.REVIEW.value], review_node)
    builder.add_node(STEP_NODE_MAP[Step.SUBMITTING.value], _bind(submit_node, "submit", records))
    builder.add_node(STEP_NODE_MAP[Step.SUCCESS.value], success_node)
    builder.add_node(STEP_NODE_MAP[Step.FAILED.value], failed_node)

    # ── Entry edge: route on the incoming state so a fresh thread starts at landing
    builder.add_conditional_edges(START, router)

    # ── Conditional edges: every node → router ──────────────────────
    for node_name in STEP_NODE_MAP.values():
        builder.add_conditional_edges(node_name, router)

    # ── Compile with checkpointer (required for interrupt) ──────────
    # In-memory only: drafts must never outlive the process
    if checkpointer is None:
        checkpointer = MemorySaver()

    return builder.compile(checkpointer=checkpointer)
