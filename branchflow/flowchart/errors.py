"""Exceptions raised by the flowchart model."""


class DefinitionError(ValueError):
    """A definition document could not be read into the model."""


class InvalidConditionError(ValueError):
    """A compound condition breaks its structural invariants."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors
