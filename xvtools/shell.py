"""A small command shell: parser for pipes, lists, background jobs and redirection."""

import enum
import io
import os
import sys
from dataclasses import dataclass, field

from xvtools import coreutils
from xvtools.fmt import fprintf
from xvtools.grep import grep
from xvtools.libc import gets

MAXARGS = 10
_WHITESPACE = " \t\r\n\v"
_SYMBOLS = "<|>&;()"
_ENCODING = "latin-1"
_LINE_MAX = 100


class ShellSyntaxError(ValueError):
    """A command line could not be parsed."""

    def __init__(self, message, leftovers=None):
        super().__init__(message)
        self.leftovers = leftovers


class OpenMode(enum.Enum):
    """How a redirection opens its file."""

    READ = "<"
    WRITE = ">"
    OVERWRITE = ">>"  # create if missing, write from the start without truncating

    @property
    def os_flags(self):
        if self is OpenMode.READ:
            return os.O_RDONLY
        if self is OpenMode.WRITE:
            return os.O_WRONLY | os.O_CREAT | os.O_TRUNC
        return os.O_WRONLY | os.O_CREAT


@dataclass
class ExecCmd:
    argv: list = field(default_factory=list)


@dataclass
class RedirCmd:
    cmd: object
    file: str
    mode: OpenMode
    fd: int


@dataclass
class PipeCmd:
    left: object
    right: object


@dataclass
class ListCmd:
    left: object
    right: object


@dataclass
class BackCmd:
    cmd: object


def _skip_space(s, pos):
    while pos < len(s) and s[pos] in _WHITESPACE:
        pos += 1
    return pos


def _scan(s, pos):
    # Return (kind, text, next position); kind "" marks the end of input.
    pos = _skip_space(s, pos)
    start = pos
    if pos >= len(s):
        kind = ""
    else:
        c = s[pos]
        if c in "|();&<":
            kind = c
            pos += 1
        elif c == ">":
            pos += 1
            kind = ">"
            if pos < len(s) and s[pos] == ">":
                kind = "+"
                pos += 1
        else:
            kind = "a"
            while pos < len(s) and s[pos] not in _WHITESPACE and s[pos] not in _SYMBOLS:
                pos += 1
    text = s[start:pos]
    return kind, text, _skip_space(s, pos)


def _truncate(s):
    return s.split("\0", 1)[0]


def tokenize(s):
    """Yield ``(kind, text)`` tokens; kind is a symbol, "+" for ">>", or "a" for a word."""
    s = _truncate(s)
    pos = 0
    while True:
        kind, text, pos = _scan(s, pos)
        if not kind:
            return
        yield kind, text


class _Parser:
    def __init__(self, s):
        self.s = s
        self.pos = 0

    def peek(self, toks):
        self.pos = _skip_space(self.s, self.pos)
        return self.pos < len(self.s) and self.s[self.pos] in toks

    def gettoken(self):
        kind, text, self.pos = _scan(self.s, self.pos)
        return kind, text

    def parse_line(self):
        cmd = self.parse_pipe()
        while self.peek("&"):
            self.gettoken()
            cmd = BackCmd(cmd)
        if self.peek(";"):
            self.gettoken()
            cmd = ListCmd(cmd, self.parse_line())
        return cmd

    def parse_pipe(self):
        cmd = self.parse_exec()
        if self.peek("|"):
            self.gettoken()
            cmd = PipeCmd(cmd, self.parse_pipe())
        return cmd

    def parse_redirs(self, cmd):
        while self.peek("<>"):
            tok, _ = self.gettoken()
            kind, file = self.gettoken()
            if kind != "a":
                raise ShellSyntaxError("missing file for redirection")
            if tok == "<":
                cmd = RedirCmd(cmd, file, OpenMode.READ, 0)
            elif tok == ">":
                cmd = RedirCmd(cmd, file, OpenMode.WRITE, 1)
            else:
                cmd = RedirCmd(cmd, file, OpenMode.OVERWRITE, 1)
        return cmd

    def parse_block(self):
        if not self.peek("("):
            raise ShellSyntaxError("parseblock")
        self.gettoken()
        cmd = self.parse_line()
        if not self.peek(")"):
            raise ShellSyntaxError("syntax - missing )")
        self.gettoken()
        return self.parse_redirs(cmd)

    def parse_exec(self):
        if self.peek("("):
            return self.parse_block()
        cmd = ExecCmd()
        ret = self.parse_redirs(cmd)
        while not self.peek("|)&;"):
            kind, text = self.gettoken()
            if not kind:
                break
            if kind != "a":
                raise ShellSyntaxError("syntax")
            cmd.argv.append(text)
            if len(cmd.argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            ret = self.parse_redirs(ret)
        return ret


def parsecmd(s):
    """Parse a command line into a command tree."""
    s = _truncate(s)
    parser = _Parser(s)
    cmd = parser.parse_line()
    parser.peek("")
    if parser.pos != len(s):
        raise ShellSyntaxError("syntax", leftovers=s[parser.pos:])
    return cmd


def _open_redirect(file, mode):
    fd = os.open(file, mode.os_flags, 0o666)
    try:
        return os.fdopen(fd, "r" if mode is OpenMode.READ else "w",
                         encoding=_ENCODING, newline="")
    except Exception:
        os.close(fd)
        raise


def _grep_command(args, stdin, stdout, stderr):
    if not args:
        stderr.write("usage: grep pattern [file ...]\n")
        return 1
    pattern, paths = args[0], args[1:]
    if not paths:
        grep(pattern, stdin, stdout)
        return 0
    for path in paths:
        try:
            f = open(path, encoding=_ENCODING, newline="")
        except OSError:
            fprintf(stdout, "grep: cannot open %s\n", path)
            return 1
        with f:
            grep(pattern, f, stdout)
    return 0


def _default_commands():
    return {
        "cat": coreutils.cat_main,
        "echo": coreutils.echo_main,
        "grep": _grep_command,
        "kill": coreutils.kill_main,
        "ln": coreutils.ln_main,
        "ls": coreutils.ls_main,
        "mkdir": coreutils.mkdir_main,
        "rm": coreutils.rm_main,
        "wc": coreutils.wc_main,
    }


class Shell:
    """Runs parsed commands; ``commands`` maps names to ``f(args, stdin, stdout, stderr)``."""

    def __init__(self, commands=None):
        self.commands = dict(_default_commands() if commands is None else commands)

    def run(self, cmd, stdin=None, stdout=None, stderr=None):
        """Run a command tree and return its exit status."""
        stdin = sys.stdin if stdin is None else stdin
        stdout = sys.stdout if stdout is None else stdout
        stderr = sys.stderr if stderr is None else stderr

        if isinstance(cmd, ExecCmd):
            if not cmd.argv:
                return 1
            func = self.commands.get(cmd.argv[0])
            if func is None:
                fprintf(stderr, "exec %s failed\n", cmd.argv[0])
                return 0
            status = func(cmd.argv[1:], stdin, stdout, stderr)
            return 0 if status is None else status
        if isinstance(cmd, RedirCmd):
            try:
                f = _open_redirect(cmd.file, cmd.mode)
            except OSError:
                fprintf(stderr, "open %s failed\n", cmd.file)
                return 1
            with f:
                if cmd.fd == 0:
                    return self.run(cmd.cmd, f, stdout, stderr)
                return self.run(cmd.cmd, stdin, f, stderr)
        if isinstance(cmd, ListCmd):
            self.run(cmd.left, stdin, stdout, stderr)
            return self.run(cmd.right, stdin, stdout, stderr)
        if isinstance(cmd, PipeCmd):
            piped = io.StringIO()
            self.run(cmd.left, stdin, piped, stderr)
            self.run(cmd.right, io.StringIO(piped.getvalue()), stdout, stderr)
            return 0
        if isinstance(cmd, BackCmd):
            self.run(cmd.cmd, stdin, stdout, stderr)
            return 0
        raise TypeError("runcmd")

    def runline(self, line, stdin=None, stdout=None, stderr=None):
        """Handle one input line, including the ``cd`` built-in; return the status."""
        stderr = sys.stderr if stderr is None else stderr
        if line.startswith("cd "):
            path = line[3:]
            if path.endswith(("\n", "\r")):
                path = path[:-1]
            try:
                os.chdir(path)
            except OSError:
                fprintf(stderr, "cannot cd %s\n", path)
                return 1
            return 0
        try:
            cmd = parsecmd(line)
        except ShellSyntaxError as exc:
            if exc.leftovers is not None:
                fprintf(stderr, "leftovers: %s\n", exc.leftovers)
            fprintf(stderr, "%s\n", str(exc))
            return 1
        return self.run(cmd, stdin, stdout, stderr)

    def repl(self, stdin=None, stdout=None, stderr=None):
        """Prompt for and run lines until end of input; return the exit status."""
        stdin = sys.stdin if stdin is None else stdin
        stderr = sys.stderr if stderr is None else stderr
        while True:
            stderr.write("$ ")
            line = gets(stdin, _LINE_MAX)
            if not line:
                break
            self.runline(line, stdin, stdout, stderr)
        return 0


def main(argv=None):
    """Run an interactive shell on the standard streams."""
    return Shell().repl(sys.stdin, sys.stdout, sys.stderr)