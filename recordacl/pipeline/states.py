"""Evaluation pipeline stages and transitions.

Stage Diagram:

    ┌──────┐ LOAD_ROLE ┌─────────────┐ LOAD_GROUP ┌──────────────┐ EVALUATE ┌───────────┐
    │ IDLE │──────────►│ ROLE_LOADED │───────────►│ GROUP_LOADED │─────────►│ EVALUATED │◄┐
    └──────┘           └─────────────┘            └──────────────┘          └─────┬─────┘ │
        ▲                                                                         │       │
        │                          RESET (from any live stage)                    └───────┘
        └─────────────────────────────────────────────────────────────     EVALUATE (new records)

    CANCEL from any live stage -> CANCELLED (terminal)
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Set


class EvaluationStage(str, Enum):
    """Stages of one evaluation context."""

    IDLE = "idle"                   # Nothing loaded
    ROLE_LOADED = "role_loaded"     # Personal role available
    GROUP_LOADED = "group_loaded"   # Group-bound role available, ready to evaluate
    EVALUATED = "evaluated"         # Results computed for the current inputs
    CANCELLED = "cancelled"         # Context torn down


class StageTransition(str, Enum):
    """Events that move a context between stages."""

    LOAD_ROLE = "load_role"
    LOAD_GROUP = "load_group"
    EVALUATE = "evaluate"
    RESET = "reset"
    CANCEL = "cancel"


class StageRule(NamedTuple):
    """A valid stage transition."""
    from_stage: EvaluationStage
    to_stage: EvaluationStage
    transition: StageTransition


LIVE_STAGES = [
    EvaluationStage.IDLE,
    EvaluationStage.ROLE_LOADED,
    EvaluationStage.GROUP_LOADED,
    EvaluationStage.EVALUATED,
]

STAGE_RULES: list[StageRule] = [
    StageRule(EvaluationStage.IDLE, EvaluationStage.ROLE_LOADED, StageTransition.LOAD_ROLE),
    StageRule(EvaluationStage.ROLE_LOADED, EvaluationStage.GROUP_LOADED, StageTransition.LOAD_GROUP),
    StageRule(EvaluationStage.GROUP_LOADED, EvaluationStage.EVALUATED, StageTransition.EVALUATE),
    StageRule(EvaluationStage.EVALUATED, EvaluationStage.EVALUATED, StageTransition.EVALUATE),
]
STAGE_RULES += [
    StageRule(stage, EvaluationStage.IDLE, StageTransition.RESET) for stage in LIVE_STAGES
]
STAGE_RULES += [
    StageRule(stage, EvaluationStage.CANCELLED, StageTransition.CANCEL) for stage in LIVE_STAGES
]

STAGE_TARGETS: Dict[tuple[EvaluationStage, StageTransition], EvaluationStage] = {
    (rule.from_stage, rule.transition): rule.to_stage for rule in STAGE_RULES
}

TERMINAL_STAGES: Set[EvaluationStage] = {EvaluationStage.CANCELLED}

# Stages in which evaluation inputs are complete
READY_STAGES: Set[EvaluationStage] = {
    EvaluationStage.GROUP_LOADED,
    EvaluationStage.EVALUATED,
}


class StageTransitionError(Exception):
    """Raised when a context is driven through an invalid transition."""

    def __init__(self, from_stage: EvaluationStage, transition: StageTransition):
        super().__init__(f"Cannot {transition.value} from stage {from_stage.value}")
        self.from_stage = from_stage
        self.transition = transition


def can_transition(from_stage: EvaluationStage, transition: StageTransition) -> bool:
    """Check if a transition is valid from the given stage."""
    return (from_stage, transition) in STAGE_TARGETS


def get_target_stage(from_stage: EvaluationStage, transition: StageTransition) -> Optional[EvaluationStage]:
    """Get the stage a transition leads to, or None if invalid."""
    return STAGE_TARGETS.get((from_stage, transition))


def advance(from_stage: EvaluationStage, transition: StageTransition) -> EvaluationStage:
    """Apply a transition.

    Raises:
        StageTransitionError: If the transition is invalid
    """
    target = get_target_stage(from_stage, transition)
    if target is None:
        raise StageTransitionError(from_stage, transition)
    return target
