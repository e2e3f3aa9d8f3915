"""Tests for the folder importer script."""

from import_dreams import collect_dream_files, extract_day_number, import_dreams
from stats import aggregate
from store import BlobStore, EntryStore

from conftest import make_entry


def write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_extract_day_number():
    assert extract_day_number("Day26.md") == 26
    assert extract_day_number("notes.md") == float("inf")


def test_collect_in_chronological_order(tmp_path):
    write(tmp_path / "2025.02" / "Day1.md", "feb")
    write(tmp_path / "2025.01" / "Day10.md", "jan 10")
    write(tmp_path / "2025.01" / "Day2.txt", "jan 2")
    write(tmp_path / "2025.01" / "readme.md", "ignored")
    write(tmp_path / "misc" / "Day1.md", "bad folder")
    write(tmp_path / "2025.02" / "Day31.md", "no such day")

    found = collect_dream_files(str(tmp_path))
    assert [(d.month, d.day) for d, _ in found] == [(1, 2), (1, 10), (2, 1)]


def test_import_skips_known_and_empty(tmp_path, db_session):
    write(tmp_path / "2025.01" / "Day1.md", "I was falling")
    write(tmp_path / "2025.01" / "Day2.md", "   ")
    write(tmp_path / "2025.01" / "Day3.md", "A door in the sea")

    store = EntryStore(BlobStore(db_session), key="import-test")
    store.load()
    assert import_dreams(store, str(tmp_path)) == 2
    assert import_dreams(store, str(tmp_path)) == 0

    entries = EntryStore(BlobStore(db_session), key="import-test").load()
    assert [e.content for e in entries] == ["A door in the sea", "I was falling"]
    assert all(e.analysis is None and e.image_url is None for e in entries)


def test_import_keeps_most_recent_first(tmp_path, db_session):
    store = EntryStore(BlobStore(db_session), key="import-order")
    store.load()
    store.append(make_entry("recent", day=151))  # 2025-06-01
    write(tmp_path / "2025.01" / "Day1.md", "an old dream about the sea")
    write(tmp_path / "2025.12" / "Day24.md", "a winter dream")

    assert import_dreams(store, str(tmp_path)) == 2

    entries = EntryStore(BlobStore(db_session), key="import-order").load()
    dates = [e.date for e in entries]
    assert dates == sorted(dates, reverse=True)
    assert [e.content for e in entries] == ["a winter dream", "dream recent", "an old dream about the sea"]

    series = aggregate(entries).lucidity_series
    assert [p.date for p in series] == sorted(dates)
