"""A simulated first-fit free-list allocator over a growable heap."""

_UNIT = 16  # size of a block header, and the allocation granularity
_MIN_MORECORE = 4096


class Heap:
    """A heap whose addresses are byte offsets; blocks are multiples of 16 bytes.

    The free list is circular and kept in address order, with a zero-sized
    sentinel at address 0 that lies below every heap block.
    """

    def __init__(self, limit=128 * 1024 * 1024):
        self.limit = limit
        self._ptr = {}
        self._size = {}
        self._freep = None
        self._brk = 1  # next free unit above the sentinel
        self._allocated = set()

    def _morecore(self, nu):
        nu = max(nu, _MIN_MORECORE)
        if (self._brk - 1 + nu) * _UNIT > self.limit:
            return None
        hp = self._brk
        self._brk += nu
        self._size[hp] = nu
        self._release(hp)
        return self._freep

    def malloc(self, nbytes):
        """Allocate ``nbytes`` and return the block's address."""
        if nbytes < 0:
            raise ValueError("negative allocation size")
        nunits = (nbytes + _UNIT - 1) // _UNIT + 1
        if self._freep is None:
            self._ptr[0] = 0
            self._size[0] = 0
            self._freep = 0
        prevp = self._freep
        p = self._ptr[prevp]
        while True:
            if self._size[p] >= nunits:
                if self._size[p] == nunits:
                    self._ptr[prevp] = self._ptr[p]
                else:
                    self._size[p] -= nunits
                    p += self._size[p]
                    self._size[p] = nunits
                self._ptr.pop(p, None)
                self._freep = prevp
                self._allocated.add(p)
                return (p + 1) * _UNIT
            if p == self._freep:
                p = self._morecore(nunits)
                if p is None:
                    raise MemoryError(f"cannot allocate {nbytes} bytes")
            prevp, p = p, self._ptr[p]

    def free(self, addr):
        """Return the block at ``addr`` to the free list."""
        if addr % _UNIT or addr // _UNIT - 1 not in self._allocated:
            raise ValueError(f"free of unallocated address {addr}")
        bp = addr // _UNIT - 1
        self._allocated.remove(bp)
        self._release(bp)

    def _release(self, bp):
        ptr, size = self._ptr, self._size
        p = self._freep
        while not (p < bp < ptr[p]):
            if p >= ptr[p] and (bp > p or bp < ptr[p]):
                break
            p = ptr[p]
        nxt = ptr[p]
        if bp + size[bp] == nxt:
            size[bp] += size[nxt]
            ptr[bp] = ptr[nxt]
            del ptr[nxt], size[nxt]
        else:
            ptr[bp] = nxt
        if p + size[p] == bp:
            size[p] += size[bp]
            ptr[p] = ptr[bp]
            del ptr[bp], size[bp]
        else:
            ptr[p] = bp
        self._freep = p

    def free_units(self):
        """Total size, in 16-byte units, of the blocks on the free list."""
        if self._freep is None:
            return 0
        total = 0
        p = self._ptr[0]
        while p != 0:
            total += self._size[p]
            p = self._ptr[p]
        return total