"""
tracker_batch -- threshold evaluation and job scheduling.

Runs the two daily passes that notify users when a threshold is crossed:

    budget-check  budgets of the current local month at >= 90% / >= 100%
    goal-check    goals that reached their target or the halfway milestone

Architecture:
    tracker_batch/ is a top-level package.  Nothing in tracker_kernel/
    imports from tracker_batch.  ``orchestrator.NotifierOrchestrator`` is
    the composition root.
"""
