"""Errors raised by the billing cycle calculator and the subscription engine."""


class InvalidPlanConfiguration(ValueError):
    """A plan carries an unknown plan type or monthly behavior."""


class InvalidStatusTransition(ValueError):
    """A service was asked to move to a status its current status cannot reach."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move service from '{current}' to '{target}'")


class CollaboratorFailure(Exception):
    """An activation, invoice or persistence call did not complete."""
