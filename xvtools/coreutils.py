"""Small file utilities: wc, cat, echo, ls, kill, ln, mkdir and rm."""

import os
import signal
import stat as _stat
import sys
from dataclasses import dataclass

from xvtools import fmt
from xvtools.fmt import fprintf
from xvtools.libc import atoi

DIRSIZ = 14

T_DIR = 1
T_FILE = 2
T_DEVICE = 3

_BUFSIZE = 512
_LS_BUFSIZE = 512
# The terminating NUL of the separator set also counts as a separator.
_WC_SEPARATORS = " \r\t\n\v\0"
_ENCODING = "latin-1"


def _open(path):
    return open(path, encoding=_ENCODING, newline="")


def _std(stdin, stdout, stderr):
    return (
        sys.stdin if stdin is None else stdin,
        sys.stdout if stdout is None else stdout,
        sys.stderr if stderr is None else stderr,
    )


def _args(argv):
    return sys.argv[1:] if argv is None else list(argv)


@dataclass(frozen=True)
class WordCount:
    """Line, word and character counts of one input."""

    lines: int
    words: int
    chars: int
    name: str = ""

    def __str__(self):
        return fmt.format("%d %d %d %s", self.lines, self.words, self.chars, self.name)


def wc(stream, name=""):
    """Count lines, words and characters read from ``stream``."""
    lines = words = chars = 0
    inword = False
    while chunk := stream.read(_BUFSIZE):
        for c in chunk:
            chars += 1
            if c == "\n":
                lines += 1
            if c in _WC_SEPARATORS:
                inword = False
            elif not inword:
                words += 1
                inword = True
    return WordCount(lines, words, chars, name)


def cat(streams, out):
    """Copy every stream in ``streams`` to ``out``.

    Raises OSError with the message "cat: read error" or "cat: write error".
    """
    for stream in streams:
        while True:
            try:
                chunk = stream.read(_BUFSIZE)
            except OSError as exc:
                raise OSError("cat: read error") from exc
            if not chunk:
                break
            try:
                n = out.write(chunk)
            except OSError as exc:
                raise OSError("cat: write error") from exc
            if n is not None and n != len(chunk):
                raise OSError("cat: write error")


def echo(args):
    """Return the arguments joined by spaces and ended by a newline."""
    if not args:
        return ""
    return " ".join(args) + "\n"


def fmtname(path):
    """Return the last path component, blank-padded to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def _type_of(st):
    if _stat.S_ISDIR(st.st_mode):
        return T_DIR
    if _stat.S_ISREG(st.st_mode):
        return T_FILE
    return T_DEVICE


def ls(path, out, err):
    """List ``path``: one line for a file, one per entry for a directory."""
    try:
        st = os.stat(path)
    except OSError:
        fprintf(err, "ls: cannot open %s\n", path)
        return
    kind = _type_of(st)
    if kind != T_DIR:
        fprintf(out, "%s %d %d %l\n", fmtname(path), kind, st.st_ino, st.st_size)
        return
    if len(path) + 1 + DIRSIZ + 1 > _LS_BUFSIZE:
        fprintf(out, "ls: path too long\n")
        return
    try:
        names = sorted(os.listdir(path))
    except OSError:
        fprintf(err, "ls: cannot open %s\n", path)
        return
    for name in [".", "..", *names]:
        entry = path + "/" + name
        try:
            est = os.stat(entry)
        except OSError:
            fprintf(out, "ls: cannot stat %s\n", entry)
            continue
        fprintf(out, "%s %d %d %d\n", fmtname(entry), _type_of(est), est.st_ino, est.st_size)


def wc_main(argv=None, stdin=None, stdout=None, stderr=None):
    """Run wc over the named files, or standard input; return the exit status."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    args = _args(argv)
    if not args:
        try:
            result = wc(stdin, "")
        except OSError:
            stdout.write("wc: read error\n")
            return 1
        stdout.write(f"{result}\n")
        return 0
    for path in args:
        try:
            f = _open(path)
        except OSError:
            fprintf(stdout, "wc: cannot open %s\n", path)
            return 1
        with f:
            try:
                result = wc(f, path)
            except OSError:
                stdout.write("wc: read error\n")
                return 1
        stdout.write(f"{result}\n")
    return 0


def cat_main(argv=None, stdin=None, stdout=None, stderr=None):
    """Concatenate the named files, or standard input; return the exit status."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    args = _args(argv)
    try:
        if not args:
            cat([stdin], stdout)
            return 0
        for path in args:
            try:
                f = _open(path)
            except OSError:
                fprintf(stderr, "cat: cannot open %s\n", path)
                return 1
            with f:
                cat([f], stdout)
    except OSError as exc:
        fprintf(stderr, "%s\n", str(exc))
        return 1
    return 0


def echo_main(argv=None, stdin=None, stdout=None, stderr=None):
    """Print the arguments; return the exit status."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    stdout.write(echo(_args(argv)))
    return 0


def ls_main(argv=None, stdin=None, stdout=None, stderr=None):
    """List each named path, or the current directory; return the exit status."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    args = _args(argv)
    for path in args or ["."]:
        ls(path, stdout, stderr)
    return 0


def kill_main(argv=None, stdin=None, stdout=None, stderr=None):
    """Kill each process named by pid; return the exit status."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    args = _args(argv)
    if not args:
        stderr.write("usage: kill pid...\n")
        return 1
    sig = getattr(signal, "SIGKILL", signal.SIGTERM)
    for arg in args:
        pid = atoi(arg)
        if pid <= 0:
            # No process has such an id; the kill simply fails.
            continue
        try:
            os.kill(pid, sig)
        except OSError:
            pass
    return 0


def ln_main(argv=None, stdin=None, stdout=None, stderr=None):
    """Make a hard link ``new`` to ``old``; return the exit status."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    args = _args(argv)
    if len(args) != 2:
        stderr.write("Usage: ln old new\n")
        return 1
    old, new = args
    try:
        os.link(old, new)
    except OSError:
        fprintf(stderr, "link %s %s: failed\n", old, new)
    return 0


def mkdir_main(argv=None, stdin=None, stdout=None, stderr=None):
    """Create each named directory, stopping at the first failure."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    args = _args(argv)
    if not args:
        stderr.write("Usage: mkdir files...\n")
        return 1
    for path in args:
        try:
            os.mkdir(path)
        except OSError:
            fprintf(stderr, "mkdir: %s failed to create\n", path)
            break
    return 0


def rm_main(argv=None, stdin=None, stdout=None, stderr=None):
    """Remove each named file or empty directory, stopping at the first failure."""
    stdin, stdout, stderr = _std(stdin, stdout, stderr)
    args = _args(argv)
    if not args:
        stderr.write("Usage: rm files...\n")
        return 1
    for path in args:
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                os.rmdir(path)
            else:
                os.unlink(path)
        except OSError:
            fprintf(stderr, "rm: %s failed to delete\n", path)
            break
    return 0