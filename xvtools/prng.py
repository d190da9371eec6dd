"""The Park-Miller minimal standard pseudo-random generator."""

_MODULUS = 0x7FFFFFFF


def do_rand(ctx):
    """Advance state ``ctx`` and return the next value, which is also the new state.

    Values lie in the range [0, 0x7ffffffd].
    """
    x = (ctx % 0x7FFFFFFE) + 1
    hi, lo = divmod(x, 127773)
    x = 16807 * lo - 2836 * hi
    if x < 0:
        x += _MODULUS
    return x - 1


class ParkMiller:
    """An infinite stream of Park-Miller values starting from ``seed``."""

    def __init__(self, seed=1):
        if seed < 0:
            raise ValueError("seed must be non-negative")
        self.state = seed

    def next(self):
        """Return the next value."""
        self.state = do_rand(self.state)
        return self.state

    def __iter__(self):
        return self

    def __next__(self):
        return self.next()