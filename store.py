# store.py
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

import models, schemas

logger = logging.getLogger(__name__)

STORAGE_KEY = "oneiro_dream_journal"

_entries_adapter = TypeAdapter(List[schemas.DreamEntry])


class BlobStore:
    """按名字读写 blobs 表中的一段文本。"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, name: str) -> Optional[str]:
        blob = self.db.get(models.Blob, name)
        return blob.value if blob is not None else None

    def put(self, name: str, value: str) -> None:
        blob = self.db.get(models.Blob, name)
        if blob is None:
            self.db.add(models.Blob(name=name, value=value))
        else:
            blob.value = value
        self.db.commit()


class EntryStore:
    """梦境日记集合：只增不改，最新的在最前面，每次追加后整体写回。"""

    def __init__(self, blobs: BlobStore, key: str = STORAGE_KEY):
        self.blobs = blobs
        self.key = key
        self.entries: List[schemas.DreamEntry] = []

    def load(self) -> List[schemas.DreamEntry]:
        raw = self.blobs.get(self.key)
        if raw is None:
            self.entries = []
            return self.entries
        try:
            self.entries = _entries_adapter.validate_json(raw)
        except ValidationError:
            # 存储内容损坏时按空集合处理，不向用户报错
            logger.exception("Failed to load dreams from blob %r, starting empty", self.key)
            self.entries = []
        return self.entries

    def get(self, entry_id: str) -> Optional[schemas.DreamEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def append(self, entry: schemas.DreamEntry) -> schemas.DreamEntry:
        if self.get(entry.id) is not None:
            raise ValueError(f"duplicate dream id: {entry.id}")
        self.entries.insert(0, entry)
        self.persist()
        return entry

    def merge(self, new_entries: List[schemas.DreamEntry]) -> None:
        """批量导入：合并后按日期重新排成最新在前，只写回一次。"""
        known_ids = {entry.id for entry in self.entries}
        for entry in new_entries:
            if entry.id in known_ids:
                raise ValueError(f"duplicate dream id: {entry.id}")
            known_ids.add(entry.id)
        self.entries.extend(new_entries)
        # 日期相同的条目保持原有先后顺序
        self.entries.sort(key=lambda e: e.date, reverse=True)
        self.persist()

    def persist(self) -> None:
        payload = _entries_adapter.dump_json(self.entries, by_alias=True)
        self.blobs.put(self.key, payload.decode("utf-8"))
