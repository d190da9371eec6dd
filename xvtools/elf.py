"""Reading and writing ELF64 file and program headers."""

import struct
from dataclasses import dataclass

ELF_MAGIC = 0x464C457F  # "\x7FELF" in little endian

ELF_PROG_LOAD = 1

ELF_PROG_FLAG_EXEC = 1
ELF_PROG_FLAG_WRITE = 2
ELF_PROG_FLAG_READ = 4

_ELF_STRUCT = struct.Struct("<I12sHHIQQQIHHHHHH")
_PROG_STRUCT = struct.Struct("<IIQQQQQQ")


class ElfError(ValueError):
    """Raised for data that is not a well-formed ELF image."""


@dataclass
class ElfHeader:
    """The ELF file header."""

    magic: int = ELF_MAGIC
    elf: bytes = bytes(12)
    type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = 0
    phentsize: int = 0
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    SIZE = _ELF_STRUCT.size

    @classmethod
    def parse(cls, data):
        """Parse a header from the start of ``data``."""
        if len(data) < cls.SIZE:
            raise ElfError("truncated ELF header")
        header = cls(*_ELF_STRUCT.unpack_from(data, 0))
        if header.magic != ELF_MAGIC:
            raise ElfError("bad ELF magic")
        return header

    def pack(self):
        """Serialise the header to bytes."""
        return _ELF_STRUCT.pack(
            self.magic, bytes(self.elf).ljust(12, b"\0")[:12], self.type,
            self.machine, self.version, self.entry, self.phoff, self.shoff,
            self.flags, self.ehsize, self.phentsize, self.phnum,
            self.shentsize, self.shnum, self.shstrndx,
        )


@dataclass
class ProgramHeader:
    """An ELF program (segment) header."""

    type: int = 0
    flags: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    align: int = 0

    SIZE = _PROG_STRUCT.size

    @classmethod
    def parse(cls, data, offset=0):
        """Parse a program header at ``offset`` in ``data``."""
        if offset < 0 or len(data) < offset + cls.SIZE:
            raise ElfError("truncated program header")
        return cls(*_PROG_STRUCT.unpack_from(data, offset))

    def pack(self):
        """Serialise the program header to bytes."""
        return _PROG_STRUCT.pack(
            self.type, self.flags, self.off, self.vaddr,
            self.paddr, self.filesz, self.memsz, self.align,
        )

    @property
    def loadable(self):
        return self.type == ELF_PROG_LOAD


def program_headers(data):
    """Return the list of program headers of the ELF image in ``data``."""
    header = ElfHeader.parse(data)
    step = header.phentsize or ProgramHeader.SIZE
    return [
        ProgramHeader.parse(data, header.phoff + i * step)
        for i in range(header.phnum)
    ]