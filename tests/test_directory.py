import pytest

from nachos.directory import ENTRY_SIZE, FILE_NAME_MAX_LEN, Directory, DirectoryEntry


def test_add_and_find():
    d = Directory(10)
    assert d.add("foo", 5) is True
    assert d.find("foo") == 5
    assert d.find("bar") is None


def test_duplicate_add_fails():
    d = Directory(10)
    assert d.add("foo", 5)
    assert d.add("foo", 7) is False
    assert d.find("foo") == 5


def test_full_directory_rejects_add():
    d = Directory(2)
    assert d.add("a", 1)
    assert d.add("b", 2)
    assert d.add("c", 3) is False
    assert d.names() == ["a", "b"]


def test_remove():
    d = Directory(3)
    d.add("a", 1)
    assert d.remove("a") is True
    assert d.find("a") is None
    assert d.remove("a") is False


def test_freed_slot_reused_in_order():
    d = Directory(3)
    d.add("a", 1)
    d.add("b", 2)
    d.remove("a")
    d.add("c", 3)
    assert d.names() == ["c", "b"]
    assert len(d) == 2


def test_long_names_truncated():
    d = Directory(4)
    long_name = "abcdefghijklmn"
    assert d.add(long_name, 4)
    assert d.names() == [long_name[:FILE_NAME_MAX_LEN]]
    assert d.find(long_name[:FILE_NAME_MAX_LEN] + "zzz") == 4
    assert d.add(long_name[:FILE_NAME_MAX_LEN] + "q", 9) is False


def test_contains():
    d = Directory(2)
    d.add("x", 1)
    assert "x" in d
    assert "y" not in d


def test_to_bytes_length():
    assert ENTRY_SIZE == 20
    assert len(Directory(10).to_bytes()) == 10 * ENTRY_SIZE


def test_entry_layout():
    entry = DirectoryEntry(True, 5, "foo")
    raw = entry.pack()
    assert raw[:4] == b"\x01\x00\x00\x00"
    assert raw[4:8] == (5).to_bytes(4, "little")
    assert raw[8:11] == b"foo"
    assert raw[11:] == bytes(ENTRY_SIZE - 11)


def test_round_trip():
    d = Directory(5)
    d.add("one", 11)
    d.add("two", 12)
    d.add("three", 13)
    d.remove("two")
    restored = Directory.from_bytes(d.to_bytes(), 5)
    assert restored.names() == d.names()
    assert restored.find("one") == 11
    assert restored.find("three") == 13
    assert restored.find("two") is None
    assert restored.to_bytes() == d.to_bytes()


def test_from_bytes_too_short():
    with pytest.raises(ValueError):
        Directory.from_bytes(bytes(ENTRY_SIZE), 2)


def test_negative_size():
    with pytest.raises(ValueError):
        Directory(-1)


def test_sector_out_of_range_cannot_be_stored():
    d = Directory(1)
    d.add("big", 1 << 40)
    with pytest.raises(ValueError):
        d.to_bytes()