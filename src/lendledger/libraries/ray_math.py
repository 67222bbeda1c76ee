from lendledger.exceptions import LedgerValueError

# Ray: decimal numbers with 27 digits of precision
RAY = 10**27


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """
    Calculate a * b / denominator with full precision on the intermediate product, rounding down.

    The product is not bounded to uint256, so values derived from uint256 inputs never overflow.
    """

    if denominator == 0:
        raise LedgerValueError(message="Division by zero")
    return (a * b) // denominator


def ray_div_floor(a: int, b: int) -> int:
    """
    Divide two values as a ray, rounding down.
    """

    return mul_div_floor(a, RAY, b)
