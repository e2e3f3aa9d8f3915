import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# main.py 在导入时读取 DATABASE_URL 并建表，必须在导入之前设置
_tmpdir = tempfile.mkdtemp(prefix="oneiro-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.pop("STORAGE_KEY", None)

from schemas import DreamAnalysis, DreamEntry, Mood  # noqa: E402

BASE_DATE = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_entry(entry_id, themes=(), symbols=(), mood=Mood.PEACEFUL, lucidity=5, analyzed=True, day=0):
    analysis = None
    if analyzed:
        analysis = DreamAnalysis(
            interpretation=f"interpretation {entry_id}",
            mood=mood,
            symbols=list(symbols),
            lucidity_score=lucidity,
            themes=list(themes),
            image_prompt=f"prompt {entry_id}",
        )
    return DreamEntry(
        id=entry_id,
        date=BASE_DATE + timedelta(days=day),
        content=f"dream {entry_id}",
        analysis=analysis,
    )


@pytest.fixture
def db_session():
    import main

    session = main.SessionLocal()
    try:
        yield session
    finally:
        session.query(main.models.Blob).delete()
        session.commit()
        session.close()
