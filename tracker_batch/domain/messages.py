"""
Alert message templates.

Pure functions returning ``AlertMessage(subject, body)``.  Amounts are shown
as stored: integer minor units for budgets, 2dp for goals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

SIGNATURE = "Best,\nFinance Manager"


@dataclass(frozen=True)
class AlertMessage:
    subject: str
    body: str


def budget_exceeded(
    user_name: str, category: str, month: int, year: int, amount: int, spent: int
) -> AlertMessage:
    return AlertMessage(
        subject=f"Budget Exceeded: {category}",
        body=(
            f"Dear {user_name},\n\n"
            f"Your {category} budget for {month}/{year} (${amount}) has been exceeded. "
            f"You've spent ${spent}.\n\n"
            "Please review your expenses.\n\n"
            f"{SIGNATURE}"
        ),
    )


def budget_warning(
    user_name: str,
    category: str,
    month: int,
    year: int,
    amount: int,
    spent: int,
    percent: Decimal,
) -> AlertMessage:
    return AlertMessage(
        subject=f"Budget Warning: {category}",
        body=(
            f"Dear {user_name},\n\n"
            f"You're approaching your {category} budget limit for {month}/{year} "
            f"(${amount}). You've spent ${spent} ({percent}%).\n\n"
            "Consider adjusting your spending.\n\n"
            f"{SIGNATURE}"
        ),
    )


def goal_achieved(user_name: str, goal_name: str, target: Decimal) -> AlertMessage:
    return AlertMessage(
        subject=f"Goal Achieved: {goal_name}",
        body=(
            f"Dear {user_name},\n\n"
            f'Congratulations! You\'ve achieved your goal "{goal_name}" (${target}).\n\n'
            "Keep up the great work!\n\n"
            f"{SIGNATURE}"
        ),
    )


def goal_milestone(
    user_name: str,
    goal_name: str,
    current: Decimal,
    target: Decimal,
    percent: Decimal,
) -> AlertMessage:
    return AlertMessage(
        subject=f"Goal Milestone: {goal_name}",
        body=(
            f"Dear {user_name},\n\n"
            f'You\'re halfway to your goal "{goal_name}"! '
            f"You've saved ${current} of ${target} ({percent}%).\n\n"
            "Keep going!\n\n"
            f"{SIGNATURE}"
        ),
    )
