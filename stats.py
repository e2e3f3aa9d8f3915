# stats.py
from typing import Dict, Iterable

from schemas import DreamEntry, DreamStats, LucidityPoint, Mood

NO_MOOD = "—"


def aggregate(entries: Iterable[DreamEntry]) -> DreamStats:
    """心情分布 + 清醒度走势。输入是最新在前，走势按时间正序输出。"""
    entries = list(entries)

    mood_counts: Dict[Mood, int] = {}
    for entry in entries:
        if entry.analysis is not None and entry.analysis.mood is not None:
            mood = entry.analysis.mood
            mood_counts[mood] = mood_counts.get(mood, 0) + 1

    scores = [entry.analysis.lucidity_score if entry.analysis else 0 for entry in entries]
    series = [
        LucidityPoint(date=entry.date, score=score)
        for entry, score in zip(reversed(entries), reversed(scores))
    ]

    total = len(entries)
    average = sum(scores) / total if total else 0.0

    dominant = NO_MOOD
    if mood_counts:
        # max 在并列时返回第一个，即最早出现的心情
        dominant = max(mood_counts, key=mood_counts.get).value

    return DreamStats(
        mood_counts=mood_counts,
        lucidity_series=series,
        total_count=total,
        average_lucidity=average,
        dominant_mood=dominant,
    )
