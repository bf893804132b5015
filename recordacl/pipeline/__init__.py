"""Staged, cancellable evaluation contexts."""

from .cancellation import CancellationToken
from .context import EvaluationContext, ListPermissions, RecordPermissions
from .states import (
    EvaluationStage,
    StageTransition,
    StageTransitionError,
    can_transition,
    get_target_stage,
)

__all__ = [
    "CancellationToken",
    "EvaluationContext",
    "ListPermissions",
    "RecordPermissions",
    "EvaluationStage",
    "StageTransition",
    "StageTransitionError",
    "can_transition",
    "get_target_stage",
]
