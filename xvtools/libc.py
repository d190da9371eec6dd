"""String and input helpers with C library semantics."""

from itertools import zip_longest


def _as_bytes(s):
    return bytes(s) if isinstance(s, (bytes, bytearray)) else s.encode("utf-8")


def atoi(s):
    """Convert leading decimal digits to an int; no sign or whitespace accepted."""
    if isinstance(s, (bytes, bytearray)):
        s = s.decode("latin-1")
    n = 0
    for ch in s:
        if not "0" <= ch <= "9":
            break
        n = n * 10 + ord(ch) - ord("0")
    return n


def strcmp(p, q):
    """Compare two NUL-terminated strings; return the byte difference."""
    for x, y in zip_longest(_as_bytes(p), _as_bytes(q), fillvalue=0):
        if x == 0 or x != y:
            return x - y
    return 0


def memcmp(a, b, n):
    """Compare the first ``n`` bytes of ``a`` and ``b``."""
    a, b = _as_bytes(a), _as_bytes(b)
    if n < 0 or n > len(a) or n > len(b):
        raise ValueError("memcmp length exceeds buffer")
    for x, y in zip(a[:n], b[:n]):
        if x != y:
            return x - y
    return 0


def gets(stream, max):
    """Read up to ``max - 1`` characters, stopping after a newline or carriage return."""
    chars = []
    empty = ""
    while len(chars) + 1 < max:
        c = stream.read(1)
        if not c:
            break
        empty = c[:0]
        chars.append(c)
        if c in ("\n", "\r", b"\n", b"\r"):
            break
    return empty.join(chars)