"""HR Workflows.

Salary adjustment lifecycle; both outcomes are terminal:

    pending --approve--> approved
    pending --reject---> rejected
"""

from payroll_kernel.domain.workflow import Guard, Transition, Workflow
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.hr.workflows")


REJECTION_REASON_GIVEN = Guard(
    name="rejection_reason_given",
    description="A non-empty rejection reason is recorded",
)

SALARY_ADJUSTMENT_WORKFLOW = Workflow(
    name="salary_adjustment",
    description="Salary adjustment approval",
    initial_state="pending",
    states=("pending", "approved", "rejected"),
    transitions=(
        Transition("pending", "approved", action="approve"),
        Transition("pending", "rejected", action="reject", guard=REJECTION_REASON_GIVEN),
    ),
    terminal_states=("approved", "rejected"),
)

logger.info(
    "salary_adjustment_workflow_registered",
    extra={
        "workflow_name": SALARY_ADJUSTMENT_WORKFLOW.name,
        "state_count": len(SALARY_ADJUSTMENT_WORKFLOW.states),
        "transition_count": len(SALARY_ADJUSTMENT_WORKFLOW.transitions),
    },
)
