"""Sv39 page tables over a simulated physical memory."""

from xvtools.riscv import (
    MAXVA,
    PGSIZE,
    PTE_R,
    PTE_U,
    PTE_V,
    PTE_W,
    PTE_X,
    pa2pte,
    pgrounddown,
    pgroundup,
    pte2pa,
    pte_flags,
    px,
)

_PTE_SIZE = 8
_PTES_PER_TABLE = PGSIZE // _PTE_SIZE
_MASK64 = (1 << 64) - 1


class VMPanic(RuntimeError):
    """An invariant of the virtual-memory system was violated."""


class OutOfMemory(MemoryError):
    """No free physical page was available."""


class BadAddress(ValueError):
    """A user virtual address is not mapped or a string was not terminated."""


class PhysicalMemory:
    """A run of physical pages starting at ``base`` with a page allocator."""

    def __init__(self, npages=256, base=0x80000000):
        if npages <= 0:
            raise ValueError("physical memory needs at least one page")
        if base % PGSIZE:
            raise ValueError("physical memory base must be page aligned")
        self.base = base
        self.npages = npages
        self._bytes = bytearray(npages * PGSIZE)
        # Pages are handed out from the end of the list, highest address first.
        self._free = [base + i * PGSIZE for i in range(npages)]

    @property
    def end(self):
        return self.base + self.npages * PGSIZE

    @property
    def free_count(self):
        """Number of pages currently free."""
        return len(self._free)

    def alloc(self):
        """Allocate one zeroed page and return its physical address."""
        if not self._free:
            raise OutOfMemory("out of physical pages")
        pa = self._free.pop()
        self.write(pa, bytes(PGSIZE))
        return pa

    def free(self, pa):
        """Return the page at ``pa`` to the allocator."""
        if pa % PGSIZE or not self.base <= pa < self.end:
            raise VMPanic("kfree")
        self._free.append(pa)

    def _offset(self, pa, n):
        off = pa - self.base
        if off < 0 or n < 0 or off + n > len(self._bytes):
            raise VMPanic(f"bad physical address {pa:#x}")
        return off

    def read(self, pa, n):
        """Read ``n`` bytes at physical address ``pa``."""
        off = self._offset(pa, n)
        return bytes(self._bytes[off:off + n])

    def write(self, pa, data):
        """Write ``data`` at physical address ``pa``."""
        off = self._offset(pa, len(data))
        self._bytes[off:off + len(data)] = data

    def read_word(self, pa):
        """Read a little-endian 64-bit word."""
        return int.from_bytes(self.read(pa, _PTE_SIZE), "little")

    def write_word(self, pa, value):
        """Write a little-endian 64-bit word."""
        self.write(pa, (value & _MASK64).to_bytes(_PTE_SIZE, "little"))


class PageTable:
    """A three-level Sv39 page table whose pages live in ``mem``."""

    def __init__(self, mem):
        self.mem = mem
        self.root = mem.alloc()

    def walk(self, va, alloc=False):
        """Return the physical address of the level-0 PTE for ``va``.

        Missing intermediate tables are created when ``alloc`` is true;
        otherwise None is returned for them.
        """
        if va >= MAXVA or va < 0:
            raise VMPanic("walk")
        table = self.root
        for level in (2, 1):
            entry = table + _PTE_SIZE * px(level, va)
            pte = self.mem.read_word(entry)
            if pte & PTE_V:
                table = pte2pa(pte)
            else:
                if not alloc:
                    return None
                table = self.mem.alloc()
                self.mem.write_word(entry, pa2pte(table) | PTE_V)
        return table + _PTE_SIZE * px(0, va)

    def walkaddr(self, va):
        """Return the physical address of a user page, or None if unmapped."""
        if va >= MAXVA or va < 0:
            return None
        entry = self.walk(va)
        if entry is None:
            return None
        pte = self.mem.read_word(entry)
        if not pte & PTE_V or not pte & PTE_U:
            return None
        return pte2pa(pte)

    def mappages(self, va, size, pa, perm):
        """Map the pages covering ``[va, va+size)`` to physical pages from ``pa``."""
        if size == 0:
            raise VMPanic("mappages: size")
        a = pgrounddown(va)
        last = pgrounddown(va + size - 1)
        while True:
            entry = self.walk(a, True)
            if self.mem.read_word(entry) & PTE_V:
                raise VMPanic("mappages: remap")
            self.mem.write_word(entry, pa2pte(pa) | perm | PTE_V)
            if a == last:
                break
            a += PGSIZE
            pa += PGSIZE

    def unmap(self, va, npages, do_free):
        """Remove ``npages`` existing mappings from ``va``, optionally freeing memory."""
        if va % PGSIZE:
            raise VMPanic("uvmunmap: not aligned")
        for a in range(va, va + npages * PGSIZE, PGSIZE):
            entry = self.walk(a)
            if entry is None:
                raise VMPanic("uvmunmap: walk")
            pte = self.mem.read_word(entry)
            if not pte & PTE_V:
                raise VMPanic("uvmunmap: not mapped")
            if pte_flags(pte) == PTE_V:
                raise VMPanic("uvmunmap: not a leaf")
            if do_free:
                self.mem.free(pte2pa(pte))
            self.mem.write_word(entry, 0)

    def load_first(self, src):
        """Place ``src`` (less than a page) at virtual address 0."""
        if len(src) >= PGSIZE:
            raise VMPanic("uvmfirst: more than a page")
        page = self.mem.alloc()
        self.mappages(0, PGSIZE, page, PTE_W | PTE_R | PTE_X | PTE_U)
        self.mem.write(page, bytes(src))

    def grow(self, oldsz, newsz, xperm=0):
        """Grow the user image from ``oldsz`` to ``newsz``; return the new size."""
        if newsz < oldsz:
            return oldsz
        oldsz = pgroundup(oldsz)
        for a in range(oldsz, newsz, PGSIZE):
            try:
                page = self.mem.alloc()
            except OutOfMemory:
                self.shrink(a, oldsz)
                raise
            try:
                self.mappages(a, PGSIZE, page, PTE_R | PTE_U | xperm)
            except OutOfMemory:
                self.mem.free(page)
                self.shrink(a, oldsz)
                raise
        return newsz

    def shrink(self, oldsz, newsz):
        """Release user pages to bring the size down to ``newsz``; return the size."""
        if newsz >= oldsz:
            return oldsz
        if pgroundup(newsz) < pgroundup(oldsz):
            npages = (pgroundup(oldsz) - pgroundup(newsz)) // PGSIZE
            self.unmap(pgroundup(newsz), npages, True)
        return newsz

    def _freewalk(self, table):
        for i in range(_PTES_PER_TABLE):
            entry = table + i * _PTE_SIZE
            pte = self.mem.read_word(entry)
            if pte & PTE_V and not pte & (PTE_R | PTE_W | PTE_X):
                self._freewalk(pte2pa(pte))
                self.mem.write_word(entry, 0)
            elif pte & PTE_V:
                raise VMPanic("freewalk: leaf")
        self.mem.free(table)

    def free(self, sz):
        """Free ``sz`` bytes of user memory and then every page-table page."""
        if sz > 0:
            self.unmap(0, pgroundup(sz) // PGSIZE, True)
        self._freewalk(self.root)
        self.root = None

    def copy_to(self, new, sz):
        """Copy the first ``sz`` bytes of this address space, pages and flags, into ``new``."""
        for i in range(0, sz, PGSIZE):
            entry = self.walk(i)
            if entry is None:
                raise VMPanic("uvmcopy: pte should exist")
            pte = self.mem.read_word(entry)
            if not pte & PTE_V:
                raise VMPanic("uvmcopy: page not present")
            pa = pte2pa(pte)
            flags = pte_flags(pte)
            try:
                page = self.mem.alloc()
            except OutOfMemory:
                new.unmap(0, i // PGSIZE, True)
                raise
            self.mem.write(page, self.mem.read(pa, PGSIZE))
            try:
                new.mappages(i, PGSIZE, page, flags)
            except OutOfMemory:
                self.mem.free(page)
                new.unmap(0, i // PGSIZE, True)
                raise

    def clear_user(self, va):
        """Remove user access from the page at ``va``."""
        entry = self.walk(va)
        if entry is None:
            raise VMPanic("uvmclear")
        self.mem.write_word(entry, self.mem.read_word(entry) & ~PTE_U)

    def _user_pages(self, va, n):
        # Yield (physical address, length) pieces covering [va, va+n).
        while n > 0:
            va0 = pgrounddown(va)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"unmapped user address {va:#x}")
            count = min(PGSIZE - (va - va0), n)
            yield pa0 + (va - va0), count
            n -= count
            va = va0 + PGSIZE

    def copyout(self, dstva, data):
        """Copy ``data`` to user virtual address ``dstva``."""
        data = bytes(data)
        done = 0
        for pa, count in self._user_pages(dstva, len(data)):
            self.mem.write(pa, data[done:done + count])
            done += count

    def copyin(self, srcva, n):
        """Copy ``n`` bytes from user virtual address ``srcva``."""
        return b"".join(self.mem.read(pa, count) for pa, count in self._user_pages(srcva, n))

    def copyinstr(self, srcva, max):
        """Copy a NUL-terminated string of at most ``max`` bytes; return it without the NUL."""
        out = bytearray()
        while max > 0:
            va0 = pgrounddown(srcva)
            pa0 = self.walkaddr(va0)
            if pa0 is None:
                raise BadAddress(f"unmapped user address {srcva:#x}")
            n = min(PGSIZE - (srcva - va0), max)
            chunk = self.mem.read(pa0 + (srcva - va0), n)
            nul = chunk.find(0)
            if nul >= 0:
                out += chunk[:nul]
                return bytes(out)
            out += chunk
            max -= n
            srcva = va0 + PGSIZE
        raise BadAddress("string not terminated within limit")