import pytest

from xvtools.riscv import MAXVA, PGSIZE, PTE_R, PTE_U, PTE_V, PTE_W, pte_flags
from xvtools.vm import BadAddress, OutOfMemory, PageTable, PhysicalMemory, VMPanic


@pytest.fixture
def mem():
    return PhysicalMemory(64)


@pytest.fixture
def pt(mem):
    return PageTable(mem)


def test_alloc_returns_zeroed_aligned_page(mem):
    pa = mem.alloc()
    assert pa % PGSIZE == 0
    assert mem.base <= pa < mem.end
    assert mem.read(pa, PGSIZE) == bytes(PGSIZE)


def test_alloc_exhaustion():
    m = PhysicalMemory(2)
    m.alloc()
    m.alloc()
    with pytest.raises(OutOfMemory):
        m.alloc()


def test_free_then_alloc_reuses_page(mem):
    pa = mem.alloc()
    mem.write(pa, b"dirty")
    mem.free(pa)
    assert mem.alloc() == pa
    assert mem.read(pa, 5) == bytes(5)


def test_free_misaligned_panics(mem):
    with pytest.raises(VMPanic):
        mem.free(mem.base + 1)


def test_free_outside_range_panics(mem):
    with pytest.raises(VMPanic):
        mem.free(mem.end)


def test_word_round_trip(mem):
    pa = mem.alloc()
    mem.write_word(pa + 8, 0x0123456789ABCDEF)
    assert mem.read_word(pa + 8) == 0x0123456789ABCDEF


def test_read_out_of_range_panics(mem):
    with pytest.raises(VMPanic):
        mem.read(mem.end - 4, 8)


def test_walk_without_alloc_returns_none(pt):
    assert pt.walk(0) is None


def test_walk_beyond_maxva_panics(pt):
    with pytest.raises(VMPanic):
        pt.walk(MAXVA, True)


def test_walkaddr_beyond_maxva_is_none(pt):
    assert pt.walkaddr(MAXVA) is None


def test_mappages_and_walkaddr(pt, mem):
    pa = mem.alloc()
    pt.mappages(PGSIZE, PGSIZE, pa, PTE_R | PTE_U)
    assert pt.walkaddr(PGSIZE) == pa
    pte = mem.read_word(pt.walk(PGSIZE))
    assert pte_flags(pte) == PTE_R | PTE_U | PTE_V


def test_walkaddr_requires_user_bit(pt, mem):
    pa = mem.alloc()
    pt.mappages(0, PGSIZE, pa, PTE_R | PTE_W)
    assert pt.walk(0) is not None
    assert pt.walkaddr(0) is None


def test_mappages_unaligned_range_spans_pages(pt, mem):
    base = mem.alloc()
    pt.mappages(100, PGSIZE, base, PTE_R | PTE_U)
    assert pt.walkaddr(0) == base
    assert pt.walkaddr(PGSIZE) == base + PGSIZE
    assert pt.walkaddr(2 * PGSIZE) is None


def test_mappages_remap_panics(pt, mem):
    pa = mem.alloc()
    pt.mappages(0, PGSIZE, pa, PTE_R | PTE_U)
    with pytest.raises(VMPanic, match="remap"):
        pt.mappages(0, PGSIZE, pa, PTE_R | PTE_U)


def test_mappages_zero_size_panics(pt, mem):
    with pytest.raises(VMPanic, match="size"):
        pt.mappages(0, 0, mem.alloc(), PTE_R)


def test_grow_and_copy_across_page_boundary(pt):
    assert pt.grow(0, 2 * PGSIZE, PTE_W) == 2 * PGSIZE
    data = bytes(range(200))
    start = PGSIZE - 50
    pt.copyout(start, data)
    assert pt.copyin(start, len(data)) == data


def test_copyin_zero_length(pt):
    assert pt.copyin(0, 0) == b""


def test_grow_smaller_returns_old_size(pt):
    assert pt.grow(3 * PGSIZE, PGSIZE, 0) == 3 * PGSIZE


def test_shrink_unmaps_tail(pt):
    pt.grow(0, 3 * PGSIZE, PTE_W)
    assert pt.shrink(3 * PGSIZE, PGSIZE) == PGSIZE
    assert pt.walkaddr(0) is not None
    assert pt.walkaddr(PGSIZE) is None
    assert pt.walkaddr(2 * PGSIZE) is None


def test_shrink_to_larger_returns_old_size(pt):
    pt.grow(0, PGSIZE, PTE_W)
    assert pt.shrink(PGSIZE, 2 * PGSIZE) == PGSIZE


def test_free_returns_every_page(mem):
    before = mem.free_count
    table = PageTable(mem)
    table.grow(0, 5 * PGSIZE, PTE_W)
    assert mem.free_count < before
    table.free(5 * PGSIZE)
    assert mem.free_count == before


def test_free_with_leaf_mapping_panics(pt):
    pt.grow(0, PGSIZE, PTE_W)
    with pytest.raises(VMPanic, match="leaf"):
        pt.free(0)


def test_grow_out_of_memory_cleans_up():
    m = PhysicalMemory(8)
    before = m.free_count
    table = PageTable(m)
    with pytest.raises(OutOfMemory):
        table.grow(0, 100 * PGSIZE, PTE_W)
    assert table.walkaddr(0) is None
    table.free(0)
    assert m.free_count == before


def test_copy_to_duplicates_memory(pt, mem):
    pt.grow(0, 2 * PGSIZE, PTE_W)
    pt.copyout(10, b"parent data")
    child = PageTable(mem)
    pt.copy_to(child, 2 * PGSIZE)
    assert child.copyin(10, 11) == b"parent data"
    assert child.walkaddr(0) != pt.walkaddr(0)
    child.copyout(10, b"child")
    assert pt.copyin(10, 11) == b"parent data"


def test_copy_to_out_of_memory():
    m = PhysicalMemory(8)
    parent = PageTable(m)
    parent.grow(0, 2 * PGSIZE, PTE_W)
    child = PageTable(m)
    with pytest.raises(OutOfMemory):
        parent.copy_to(child, 2 * PGSIZE)
    assert child.walkaddr(0) is None


def test_copy_to_missing_page_panics(pt, mem):
    with pytest.raises(VMPanic):
        pt.copy_to(PageTable(mem), PGSIZE)


def test_clear_user(pt):
    pt.grow(0, 2 * PGSIZE, PTE_W)
    pt.clear_user(0)
    assert pt.walkaddr(0) is None
    assert pt.walkaddr(PGSIZE) is not None


def test_clear_user_unmapped_panics(pt):
    with pytest.raises(VMPanic):
        pt.clear_user(0)


def test_load_first(pt):
    pt.load_first(b"initcode")
    assert pt.copyin(0, 8) == b"initcode"
    assert pt.copyin(8, 4) == bytes(4)


def test_load_first_too_big_panics(pt):
    with pytest.raises(VMPanic):
        pt.load_first(bytes(PGSIZE))


def test_unmap_not_aligned_panics(pt):
    with pytest.raises(VMPanic, match="aligned"):
        pt.unmap(1, 1, False)


def test_unmap_not_mapped_panics(pt, mem):
    pt.mappages(0, PGSIZE, mem.alloc(), PTE_R | PTE_U)
    with pytest.raises(VMPanic, match="not mapped"):
        pt.unmap(PGSIZE, 1, False)


def test_unmap_missing_table_panics(pt):
    with pytest.raises(VMPanic, match="walk"):
        pt.unmap(0, 1, False)


def test_unmap_not_leaf_panics(pt, mem):
    pt.mappages(0, PGSIZE, mem.alloc(), 0)
    with pytest.raises(VMPanic, match="leaf"):
        pt.unmap(0, 1, False)


def test_unmap_frees_memory(pt, mem):
    pt.grow(0, PGSIZE, PTE_W)
    before = mem.free_count
    pt.unmap(0, 1, True)
    assert mem.free_count == before + 1
    assert pt.walkaddr(0) is None


def test_copyinstr(pt):
    pt.grow(0, 2 * PGSIZE, PTE_W)
    pt.copyout(PGSIZE - 3, b"hello\0world")
    assert pt.copyinstr(PGSIZE - 3, 64) == b"hello"


def test_copyinstr_without_terminator_raises(pt):
    pt.grow(0, PGSIZE, PTE_W)
    pt.copyout(0, b"abcdef")
    with pytest.raises(BadAddress):
        pt.copyinstr(0, 4)


def test_copyinstr_unmapped_raises(pt):
    with pytest.raises(BadAddress):
        pt.copyinstr(0, 16)


def test_copyout_unmapped_raises(pt):
    pt.grow(0, PGSIZE, PTE_W)
    with pytest.raises(BadAddress):
        pt.copyout(PGSIZE - 2, b"abcd")


def test_copyin_huge_address_raises(pt):
    with pytest.raises(BadAddress):
        pt.copyin((1 << 64) - 1, 1)