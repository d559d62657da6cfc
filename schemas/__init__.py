from .plan import Plan, Step, StepConfig, StepOutput, StepOutputRef, coerce_refs, iter_refs

__all__ = [
    "Plan", "Step",
    "StepConfig",
    "StepOutput", "StepOutputRef",
    "coerce_refs", "iter_refs",
]
