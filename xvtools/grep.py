"""A simple grep supporting the ^ . * $ operators."""

import sys

_CHUNK = 1023


def match(re, text):
    """Return True if ``re`` matches anywhere in ``text``."""
    if re.startswith("^"):
        return _matchhere(re, 1, text, 0)
    return any(_matchhere(re, 0, text, i) for i in range(len(text) + 1))


def _matchhere(re, ri, text, ti):
    while True:
        if ri == len(re):
            return True
        if ri + 1 < len(re) and re[ri + 1] == "*":
            return _matchstar(re[ri], re, ri + 2, text, ti)
        if re[ri] == "$" and ri + 1 == len(re):
            return ti == len(text)
        if ti < len(text) and (re[ri] == "." or re[ri] == text[ti]):
            ri += 1
            ti += 1
            continue
        return False


def _matchstar(c, re, ri, text, ti):
    while True:
        if _matchhere(re, ri, text, ti):
            return True
        if ti < len(text) and (text[ti] == c or c == "."):
            ti += 1
        else:
            return False


def _lines(stream):
    # Only newline-terminated lines are yielded; a trailing partial line is dropped.
    pending = ""
    while chunk := stream.read(_CHUNK):
        pending += chunk
        *complete, pending = pending.split("\n")
        yield from complete


def grep(pattern, stream, out):
    """Write each line of ``stream`` matching ``pattern`` to ``out``; return the count."""
    count = 0
    for line in _lines(stream):
        if match(pattern, line):
            out.write(line + "\n")
            count += 1
    return count


def main(argv=None):
    """Run grep on the command line arguments; return the exit status."""
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        sys.stderr.write("usage: grep pattern [file ...]\n")
        return 1
    pattern, paths = argv[0], argv[1:]
    if not paths:
        grep(pattern, sys.stdin, sys.stdout)
        return 0
    for path in paths:
        try:
            f = open(path, encoding="latin-1", newline="")
        except OSError:
            sys.stdout.write(f"grep: cannot open {path}\n")
            return 1
        with f:
            grep(pattern, f, sys.stdout)
    return 0