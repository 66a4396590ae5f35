"""Exceptions shared across apps."""


class InvariantViolation(AssertionError):
    """
    Raised when stored data breaks a rule that upstream validation
    should have made impossible (e.g. a per-unit resource without a
    pricing unit, or a reservation whose end is not after its start).

    This is a programmer error. Services never catch it.
    """
