"""Deterministic router — pure rule-based branching on the current step."""

from typing import Literal

from graph.state import RegistrationState, Step

# All valid destinations for add_conditional_edges
RouterDest = Literal[
    "landing", "personal", "vehicle", "review",
    "submit", "success", "failed",
]

# Mapping: step → node name
STEP_NODE_MAP: dict[str, str] = {
    Step.LANDING.value: "landing",
    Step.PERSONAL.value: "personal",
    Step.VEHICLE.value: "vehicle",
    Step.REVIEW.value: "review",
    Step.SUBMITTING.value: "submit",
    Step.SUCCESS.value: "success",
    Step.FAILED.value: "failed",
}


def router(state: RegistrationState) -> RouterDest:
    """
    Called via add_conditional_edges after every node. Each node has already
    decided the next step; the router only maps it to a node.
    """
    return STEP_NODE_MAP.get(state["step"], "landing")


View = Literal["landing", "form"]


def view_for(step: Step) -> View:
    """Two-state view switch: every step except landing renders the form."""
    return "landing" if Step(step) == Step.LANDING else "form"
