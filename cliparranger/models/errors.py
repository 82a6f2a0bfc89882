"""Exceptions raised by the arrangement engine."""

from __future__ import annotations


class ArrangementError(Exception):
    """Base class for arrangement engine errors."""


class InvariantViolation(ArrangementError):
    """A proposed commit would break a timeline invariant.

    Nothing is written when this is raised. It signals a logic defect
    rather than a user input problem.
    """

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        summary = "; ".join(self.problems[:3])
        if len(self.problems) > 3:
            summary += f" (+{len(self.problems) - 3} more)"
        super().__init__(f"Timeline invariant violated: {summary}")


class SessionActiveError(ArrangementError):
    """A drag session already holds the timeline."""


class DragStateError(ArrangementError):
    """A drag session operation was called in the wrong state."""
