from typing import Iterable


def gcd(a: int, b: int) -> int:
    """Greatest common divisor of two non-negative integers."""
    while b:
        a, b = b, a % b
    return a


def lcm(a: int, b: int) -> int:
    """Least common multiple, with ``lcm(a, 0) == 0``."""
    divisor = gcd(a, b)
    if divisor == 0:
        return 0
    return a * b // divisor


def lcm_all(values: Iterable[int]) -> int:
    """Fold ``lcm`` over ``values``.

    The first value seeds the accumulator, so an empty sequence yields 0, a
    single value is returned unchanged and a 0 anywhere gives 0.
    """
    values = iter(values)
    result = next(values, 0)
    for value in values:
        result = lcm(result, value)
    return result
