"""Payroll Workflows.

State machine for the monthly payroll period:

    draft --calculate--> calculated --approve--> approved --mark_paid--> paid

There is no backward transition.  Entry statuses mirror the period.
"""

from payroll_kernel.domain.workflow import Guard, Transition, Workflow
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

AGGREGATES_RECOMPUTED = Guard(
    name="aggregates_recomputed",
    description="Period totals are recomputed from the current entries",
)

APPROVER_IDENTIFIED = Guard(
    name="approver_identified",
    description="A named approver signs off the period",
)


# -----------------------------------------------------------------------------
# Payroll Period Workflow
# -----------------------------------------------------------------------------

PAYROLL_PERIOD_WORKFLOW = Workflow(
    name="payroll_period",
    description="Monthly payroll period lifecycle",
    initial_state="draft",
    states=("draft", "calculated", "approved", "paid"),
    transitions=(
        Transition("draft", "calculated", action="calculate", guard=AGGREGATES_RECOMPUTED),
        Transition("calculated", "approved", action="approve", guard=APPROVER_IDENTIFIED),
        Transition("approved", "paid", action="mark_paid"),
    ),
    terminal_states=("paid",),
)

logger.info(
    "payroll_period_workflow_registered",
    extra={
        "workflow_name": PAYROLL_PERIOD_WORKFLOW.name,
        "state_count": len(PAYROLL_PERIOD_WORKFLOW.states),
        "transition_count": len(PAYROLL_PERIOD_WORKFLOW.transitions),
    },
)
