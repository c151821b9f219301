import pytest

from nachos.linkedlist import IntList


def test_new_list_is_empty():
    items = IntList()
    assert items.is_empty() is True
    assert len(items) == 0


def test_prepend_makes_list_non_empty():
    items = IntList()
    items.prepend(42)
    assert items.is_empty() is False
    assert len(items) == 1


def test_remove_returns_items_in_reverse_insertion_order():
    items = IntList()
    for value in (1, 2, 3):
        items.prepend(value)
    assert [items.remove() for _ in range(3)] == [3, 2, 1]
    assert items.is_empty() is True


def test_remove_from_empty_list_raises():
    items = IntList()
    with pytest.raises(IndexError):
        items.remove()


def test_remove_after_draining_raises():
    items = IntList()
    items.prepend(7)
    assert items.remove() == 7
    with pytest.raises(IndexError):
        items.remove()


def test_iteration_goes_from_front_to_back():
    items = IntList()
    for value in (10, 20, 30):
        items.prepend(value)
    assert list(items) == [30, 20, 10]


def test_length_tracks_prepend_and_remove():
    items = IntList()
    for value in range(5):
        items.prepend(value)
    items.remove()
    assert len(items) == 4
    assert bool(items) is True


def test_negative_values_survive_round_trip():
    items = IntList()
    items.prepend(-5)
    assert items.remove() == -5