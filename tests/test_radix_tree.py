import pytest

from respkv.radix_tree import RadixTree


@pytest.fixture
def tree():
    t = RadixTree()
    for key in ["abcde", "abcdf", "abc", "ab", "b", "bcd", "xyz"]:
        t.insert(key, key.upper())
    return t


def test_search_empty_tree_returns_none():
    assert RadixTree().search("abc") is None


def test_all_inserted_keys_are_found(tree):
    for key in ["abcde", "abcdf", "abc", "ab", "b", "bcd", "xyz"]:
        assert tree.search(key) == key.upper()


def test_split_prefixes_without_values_are_not_found(tree):
    assert tree.search("abcd") is None
    assert tree.search("a") is None
    assert tree.search("bc") is None
    assert tree.search("zzz") is None


def test_insert_overwrites_value(tree):
    tree.insert("abc", "new")
    assert tree.search("abc") == "new"
    assert tree.search("abcde") == "ABCDE"


def test_empty_string_value_is_stored():
    t = RadixTree()
    t.insert("k", "")
    assert t.search("k") == ""


def test_range_search_is_ordered_and_bounded(tree):
    result = tree.range_search("abc", "b")
    assert [k for k, _ in result] == ["abc", "abcde", "abcdf", "b"]
    assert all(v == k.upper() for k, v in result)


def test_range_search_full_range_is_sorted(tree):
    keys = [k for k, _ in tree.range_search("", "zzzz")]
    assert keys == sorted(["abcde", "abcdf", "abc", "ab", "b", "bcd", "xyz"])


def test_range_search_exclusive_skips_start(tree):
    keys = [k for k, _ in tree.range_search("abc", "abcdf", exclusive=True)]
    assert keys == ["abcde", "abcdf"]


def test_range_search_on_empty_tree():
    assert RadixTree().range_search("a", "z") == []


def test_bytes_keys_round_trip():
    t = RadixTree()
    t.insert(b"\x00\x01", "one")
    t.insert(b"\x00\x02", "two")
    t.insert(b"\x01", "three")
    assert t.search(b"\x00\x02") == "two"
    result = t.range_search(b"\x00\x02", b"\xff")
    assert result == [(b"\x00\x02", "two"), (b"\x01", "three")]