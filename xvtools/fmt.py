"""A small printf understanding %d, %l, %x, %p, %s, %c and %%."""

_DIGITS = "0123456789ABCDEF"
_MASK32 = 0xFFFFFFFF
_MASK64 = (1 << 64) - 1


def _printint(xx, base, sgn):
    # Values pass through a 32-bit int, as the formatter's integer path does.
    x = xx & _MASK32
    neg = False
    if sgn and x & 0x80000000:
        neg = True
        x = (1 << 32) - x
    digits = []
    while True:
        digits.append(_DIGITS[x % base])
        x //= base
        if x == 0:
            break
    if neg:
        digits.append("-")
    return "".join(reversed(digits))


def _printptr(x):
    return "0x" + "".join(
        _DIGITS[((x & _MASK64) >> shift) & 0xF] for shift in range(60, -4, -4)
    )


def format(fmt, *args):
    """Format ``args`` according to ``fmt`` and return the text."""
    values = iter(args)
    missing = object()

    def arg():
        value = next(values, missing)
        if value is missing:
            raise TypeError("not enough arguments for format string")
        return value

    out = []
    in_percent = False
    for c in fmt:
        if not in_percent:
            if c == "%":
                in_percent = True
            else:
                out.append(c)
            continue
        if c == "d":
            out.append(_printint(arg(), 10, True))
        elif c == "l":
            out.append(_printint(arg(), 10, False))
        elif c == "x":
            out.append(_printint(arg(), 16, False))
        elif c == "p":
            out.append(_printptr(arg()))
        elif c == "s":
            s = arg()
            out.append("(null)" if s is None else str(s))
        elif c == "c":
            ch = arg()
            out.append(ch if isinstance(ch, str) else chr(ch & 0xFF))
        elif c == "%":
            out.append("%")
        else:
            # Unknown sequence: print it to draw attention.
            out.append("%" + c)
        in_percent = False
    return "".join(out)


def fprintf(stream, fmt, *args):
    """Write formatted text to ``stream``."""
    stream.write(format(fmt, *args))