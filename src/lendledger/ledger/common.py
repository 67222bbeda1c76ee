from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Upserted[T]:
    """
    Result of a get-or-create operation. `created` is True if the entity did not exist and was
    initialized by this call, which lets callers apply first-touch side effects exactly once.
    """

    entity: T
    created: bool


def subtract_floor(value: int, amount: int) -> int:
    """
    Subtract `amount` from `value`, clamping the result at zero.
    """

    return value - amount if value > amount else 0
