# xvtools

Python models of the pieces of a small RISC-V teaching operating system:
the Sv39 page-table code, the virtio block-device queue, ELF header
layouts, a first-fit free-list allocator, the printf formatter, a
Park–Miller random generator, and the user programs: the shell, `grep`,
`wc`, `cat`, `echo`, `ls`, `kill`, `ln`, `mkdir` and `rm`.

Use it to experiment with how these parts behave without a
cross-compiler or an emulator, or to check expected results for
exercises.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Commands

`xv-grep` searches for a pattern in the named files, or in standard input
when no file is given, and prints the matching lines. Patterns support
only `^`, `.`, `*` and `$`. Only lines ended by a newline are considered.

```
xv-grep '^def .*(' module.py
printf 'abc\nxyz\n' | xv-grep 'b.'
```

`xv-sh` prints a `$ ` prompt on standard error and runs each line it
reads until end of input. It understands pipes (`|`), lists (`;`),
background marks (`&`), parenthesised blocks, the redirections `<`, `>`
and `>>`, and the built-in `cd`. Its commands are `cat`, `echo`, `grep`,
`kill`, `ln`, `ls`, `mkdir`, `rm` and `wc`.

```
xv-sh
```

## Modules

| Module | What it holds |
| --- | --- |
| `xvtools.riscv` | Kernel parameters, status and PTE bit constants, and `pgroundup`, `pgrounddown`, `pa2pte`, `pte2pa`, `pte_flags`, `px`, `make_satp` |
| `xvtools.elf` | `ElfHeader` and `ProgramHeader` with `parse` and `pack`, `program_headers`, `ElfError` |
| `xvtools.fmt` | The printf subset `%d %l %x %p %s %c %%`: `format`, `fprintf` |
| `xvtools.libc` | `atoi`, `strcmp`, `memcmp`, `gets` |
| `xvtools.grep` | The matcher `match`, `grep` and `main` |
| `xvtools.umalloc` | `Heap` with `malloc`, `free` and `free_units` |
| `xvtools.vm` | `PhysicalMemory` and `PageTable` (`walk`, `walkaddr`, `mappages`, `unmap`, `load_first`, `grow`, `shrink`, `free`, `copy_to`, `clear_user`, `copyout`, `copyin`, `copyinstr`), with `VMPanic`, `OutOfMemory`, `BadAddress` |
| `xvtools.virtio_disk` | `VirtioDisk` over an in-memory disk image (`read_block`, `write_block`, `submit`, `process`, `intr`, descriptor allocation), `Descriptor`, `BlockRequest`, `DiskError` |
| `xvtools.coreutils` | `WordCount`, `wc`, `cat`, `echo`, `fmtname`, `ls` and `wc_main`, `cat_main`, `echo_main`, `ls_main`, `kill_main`, `ln_main`, `mkdir_main`, `rm_main` |
| `xvtools.shell` | `tokenize`, `parsecmd`, the command classes `ExecCmd`, `RedirCmd`, `PipeCmd`, `ListCmd`, `BackCmd`, `OpenMode`, `ShellSyntaxError` and `Shell` (`run`, `runline`, `repl`) |
| `xvtools.prng` | `do_rand` and the iterator `ParkMiller` |

## Examples

Matching:

```python
from xvtools.grep import match

match("^ab*c", "abbbc")   # True
match("x$", "xy")         # False
```

Formatting; hex digits are upper case:

```python
from xvtools.fmt import format

format("%d %x %s", -5, 255, "hi")   # "-5 FF hi"
```

Page arithmetic:

```python
from xvtools.riscv import pgroundup, pgrounddown

pgroundup(4097)     # 8192
pgrounddown(4097)   # 4096
```

A user address space over simulated physical memory:

```python
from xvtools.vm import PhysicalMemory, PageTable

mem = PhysicalMemory(npages=16)
pt = PageTable(mem)
pt.grow(0, 8192)
pt.copyout(100, b"hello\0")
pt.copyin(100, 5)          # b"hello"
pt.copyinstr(100, 10)      # b"hello"
```

Block I/O through the descriptor queue:

```python
from xvtools.virtio_disk import VirtioDisk

disk = VirtioDisk(bytes(4096))
disk.write_block(1, b"x" * 1024)
disk.read_block(1)[:1]     # b"x"
```

Parsing and running a shell line:

```python
import io
from xvtools.shell import Shell, parsecmd

cmd = parsecmd("cat < in | grep x > out ; echo done &")
out = io.StringIO()
Shell().runline("echo hi there", stdout=out)   # out holds "hi there\n"
```

Conditions the system treats as a panic or an error return are raised as
exceptions: `ShellSyntaxError`, `ElfError`, `VMPanic`, `OutOfMemory`,
`BadAddress`, `DiskError`, and `MemoryError` or `ValueError` from `Heap`.

## What it does not do

- There is no kernel, emulator or file-system image here. The page
  tables, disk and heap are models held in Python objects.
- The shell starts no external programs; only the commands listed above
  (or those passed to `Shell(commands=...)`) can be run. The stages of a
  pipe run one after another, the left stage's output collected before
  the right stage starts, and a command marked with `&` runs in the
  foreground.
- `>>` opens its file for writing, creating it if needed, from the start
  and without truncating; it does not append.
- `ls`, `ln`, `mkdir`, `rm` and `kill` act on the host's file system and
  processes.