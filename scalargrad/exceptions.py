"""Exceptions raised by the engine and the network layers."""


class ScalarGradError(Exception):
    """Base class for errors raised by scalargrad."""


class ShapeMismatchError(ScalarGradError, ValueError):
    """An input vector's length does not match the expected fan-in."""

    def __init__(self, expected: int, got: int, where: str = 'input') -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"Expected {expected} {where} values, got {got}")


class NonFiniteError(ScalarGradError, ArithmeticError):
    """A value or gradient became NaN or infinite."""
