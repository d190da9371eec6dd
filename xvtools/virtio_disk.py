"""A virtio block device queue: the driver's descriptor handling and a device model."""

from dataclasses import dataclass, field
from typing import ClassVar

SECTOR_SIZE = 512
BLOCK_SIZE = 1024

VRING_DESC_F_NEXT = 1
VRING_DESC_F_WRITE = 2

VIRTIO_BLK_T_IN = 0
VIRTIO_BLK_T_OUT = 1

_STATUS_PENDING = 0xFF
_STATUS_OK = 0
_STATUS_IOERR = 1

_IDX_MASK = 0xFFFF


class DiskError(RuntimeError):
    """A disk request or the descriptor bookkeeping failed."""


@dataclass
class Descriptor:
    """One DMA descriptor; ``addr`` refers to the memory the device uses."""

    addr: object = None
    len: int = 0
    flags: int = 0
    next: int = 0


@dataclass
class BlockRequest:
    """The command header of a block request."""

    type: int = 0
    reserved: int = 0
    sector: int = 0

    SIZE: ClassVar[int] = 16


@dataclass
class _Buffer:
    blockno: int
    data: bytearray
    disk: bool = False


@dataclass
class _Inflight:
    buf: object = None
    status: int = 0


@dataclass
class _UsedElem:
    id: int = 0
    len: int = 0


class VirtioDisk:
    """A disk backed by ``image``, driven through a queue of ``queue_size`` descriptors."""

    def __init__(self, image, queue_size=8):
        if queue_size <= 0:
            raise DiskError("virtio disk has no queue 0")
        self.image = image if isinstance(image, bytearray) else bytearray(image)
        self.num = queue_size
        self.desc = [Descriptor() for _ in range(queue_size)]
        self.avail = [0] * queue_size
        self.avail_idx = 0
        self.used = [_UsedElem() for _ in range(queue_size)]
        self.used_ring_idx = 0
        self.free = [True] * queue_size
        self.used_idx = 0
        self.info = [_Inflight() for _ in range(queue_size)]
        self.ops = [BlockRequest() for _ in range(queue_size)]
        self._last_avail = 0

    def alloc_desc(self):
        """Claim a free descriptor and return its index, or None if all are busy."""
        for i, is_free in enumerate(self.free):
            if is_free:
                self.free[i] = False
                return i
        return None

    def free_desc(self, i):
        """Release descriptor ``i``."""
        if not 0 <= i < self.num:
            raise DiskError("free_desc 1")
        if self.free[i]:
            raise DiskError("free_desc 2")
        self.desc[i] = Descriptor()
        self.free[i] = True

    def free_chain(self, i):
        """Release a chain of descriptors starting at ``i``."""
        while True:
            d = self.desc[i]
            flags, nxt = d.flags, d.next
            self.free_desc(i)
            if not flags & VRING_DESC_F_NEXT:
                break
            i = nxt

    def alloc3_desc(self):
        """Claim three descriptors; return their indices or None, keeping none on failure."""
        idx = []
        for _ in range(3):
            i = self.alloc_desc()
            if i is None:
                for j in idx:
                    self.free_desc(j)
                return None
            idx.append(i)
        return idx

    def submit(self, blockno, write=False, data=None):
        """Queue a read or write of one block; return the head descriptor index."""
        if write:
            if data is None or len(data) != BLOCK_SIZE:
                raise ValueError(f"write needs exactly {BLOCK_SIZE} bytes")
            buf = _Buffer(blockno, bytearray(data))
        else:
            buf = _Buffer(blockno, bytearray(BLOCK_SIZE))

        idx = self.alloc3_desc()
        if idx is None:
            raise DiskError("no free descriptors")
        head, mid, tail = idx

        req = self.ops[head]
        req.type = VIRTIO_BLK_T_OUT if write else VIRTIO_BLK_T_IN
        req.reserved = 0
        req.sector = blockno * (BLOCK_SIZE // SECTOR_SIZE)

        self.desc[head] = Descriptor(req, BlockRequest.SIZE, VRING_DESC_F_NEXT, mid)
        data_flags = 0 if write else VRING_DESC_F_WRITE
        self.desc[mid] = Descriptor(buf.data, BLOCK_SIZE, data_flags | VRING_DESC_F_NEXT, tail)

        info = self.info[head]
        info.status = _STATUS_PENDING
        self.desc[tail] = Descriptor(info, 1, VRING_DESC_F_WRITE, 0)

        buf.disk = True
        info.buf = buf

        self.avail[self.avail_idx % self.num] = head
        self.avail_idx = (self.avail_idx + 1) & _IDX_MASK
        return head

    def process(self):
        """Act as the device: carry out every queued request; return how many."""
        done = 0
        while self._last_avail != self.avail_idx:
            head = self.avail[self._last_avail % self.num]
            self._last_avail = (self._last_avail + 1) & _IDX_MASK
            req_d = self.desc[head]
            data_d = self.desc[req_d.next]
            status_d = self.desc[data_d.next]
            req, data, slot = req_d.addr, data_d.addr, status_d.addr

            start = req.sector * SECTOR_SIZE
            end = start + data_d.len
            if start < 0 or end > len(self.image):
                slot.status = _STATUS_IOERR
            elif req.type == VIRTIO_BLK_T_OUT:
                self.image[start:end] = data[:data_d.len]
                slot.status = _STATUS_OK
            else:
                data[:data_d.len] = self.image[start:end]
                slot.status = _STATUS_OK

            self.used[self.used_ring_idx % self.num] = _UsedElem(head, data_d.len)
            self.used_ring_idx = (self.used_ring_idx + 1) & _IDX_MASK
            done += 1
        return done

    def intr(self):
        """Handle a completion interrupt; return the head indices completed."""
        completed = []
        failed = []
        while self.used_idx != self.used_ring_idx:
            head = self.used[self.used_idx % self.num].id
            info = self.info[head]
            if info.status != _STATUS_OK:
                failed.append(head)
            if info.buf is not None:
                info.buf.disk = False
            completed.append(head)
            self.used_idx = (self.used_idx + 1) & _IDX_MASK
        if failed:
            raise DiskError(f"virtio_disk_intr status: requests {failed} failed")
        return completed

    def _rw(self, blockno, write, data):
        head = self.submit(blockno, write, data)
        buf = self.info[head].buf
        try:
            self.process()
            self.intr()
            if buf.disk:
                raise DiskError("request did not complete")
        finally:
            self.info[head].buf = None
            self.free_chain(head)
        return bytes(buf.data)

    def read_block(self, blockno):
        """Read block ``blockno`` and return its bytes."""
        return self._rw(blockno, False, None)

    def write_block(self, blockno, data):
        """Write ``data`` (one block) to block ``blockno``."""
        self._rw(blockno, True, data)