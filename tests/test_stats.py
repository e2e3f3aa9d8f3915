"""Tests for mood / lucidity aggregation."""

import pytest

from schemas import Mood
from stats import NO_MOOD, aggregate

from conftest import make_entry


def test_empty_collection():
    stats = aggregate([])
    assert stats.mood_counts == {}
    assert stats.lucidity_series == []
    assert stats.total_count == 0
    assert stats.average_lucidity == 0
    assert stats.dominant_mood == NO_MOOD


def test_all_unanalyzed():
    stats = aggregate([make_entry("1", analyzed=False), make_entry("2", analyzed=False)])
    assert stats.dominant_mood == "—"
    assert stats.average_lucidity == 0
    assert stats.total_count == 2
    assert [p.score for p in stats.lucidity_series] == [0, 0]


def test_mood_counts_in_first_seen_order():
    entries = [
        make_entry("3", mood=Mood.TENSE),
        make_entry("2", mood=Mood.JOYFUL),
        make_entry("1", mood=Mood.TENSE),
    ]
    stats = aggregate(entries)
    assert list(stats.mood_counts.items()) == [(Mood.TENSE, 2), (Mood.JOYFUL, 1)]
    assert stats.dominant_mood == "tense"


def test_dominant_mood_tie_goes_to_first_seen():
    entries = [make_entry("2", mood=Mood.SURREAL), make_entry("1", mood=Mood.FEARFUL)]
    assert aggregate(entries).dominant_mood == "surreal"


def test_entry_without_mood_is_not_counted():
    entry = make_entry("1")
    entry.analysis.mood = None
    stats = aggregate([entry])
    assert stats.mood_counts == {}
    assert stats.dominant_mood == NO_MOOD


def test_average_counts_unanalyzed_as_zero():
    entries = [
        make_entry("3", lucidity=9),
        make_entry("2", analyzed=False),
        make_entry("1", lucidity=6),
    ]
    assert aggregate(entries).average_lucidity == pytest.approx(5.0)


def test_lucidity_series_is_chronological():
    # 输入最新在前
    entries = [
        make_entry("new", lucidity=8, day=2),
        make_entry("mid", analyzed=False, day=1),
        make_entry("old", lucidity=3, day=0),
    ]
    series = aggregate(entries).lucidity_series
    assert [p.score for p in series] == [3, 0, 8]
    assert series[0].date < series[1].date < series[2].date
