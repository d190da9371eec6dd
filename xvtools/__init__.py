"""Models of a small RISC-V teaching operating system's kernel parts and user tools."""

__version__ = "0.1.0"

__all__ = [
    "coreutils",
    "elf",
    "fmt",
    "grep",
    "libc",
    "prng",
    "riscv",
    "shell",
    "umalloc",
    "virtio_disk",
    "vm",
]