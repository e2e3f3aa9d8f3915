# import_dreams.py
import os
import re
from datetime import datetime, timezone
import uuid

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models, schemas
from store import STORAGE_KEY, BlobStore, EntryStore

# --- 配置 ---
load_dotenv()
DREAM_FOLDER_PATH = os.getenv("DREAM_FOLDER_PATH")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./oneiro.db")
JOURNAL_KEY = os.getenv("STORAGE_KEY", STORAGE_KEY)

DAY_FILE_SUFFIXES = (".md", ".txt")

def extract_day_number(filename):
    """从'Day26.md'这样的文件名中提取数字26，如果失败则返回一个大数以便排序。"""
    match = re.search(r'\d+', filename)
    if match:
        return int(match.group(0))
    return float('inf') # 如果没有数字，把它排到最后

def collect_dream_files(folder_path):
    """按时间顺序返回 (日期, 文件路径)：先按 YYYY.MM 文件夹排序，再按 DayN 排序。"""
    found = []
    for month_folder in sorted(os.listdir(folder_path)):
        month_folder_path = os.path.join(folder_path, month_folder)
        if not os.path.isdir(month_folder_path):
            continue
        try:
            year, month = map(int, month_folder.split('.'))
        except ValueError:
            print(f"跳过格式不正确的文件夹: {month_folder}")
            continue

        day_files = sorted(
            [f for f in os.listdir(month_folder_path)
             if f.lower().startswith("day") and f.lower().endswith(DAY_FILE_SUFFIXES)],
            key=extract_day_number,
        )
        for day_file in day_files:
            day_match = re.search(r'\d+', day_file)
            if not day_match:
                continue
            try:
                dream_date = datetime(year, month, int(day_match.group(0)), tzinfo=timezone.utc)
            except ValueError:
                print(f"跳过日期无效的文件: {month_folder}/{day_file}")
                continue
            found.append((dream_date, os.path.join(month_folder_path, day_file)))
    return found

def import_dreams(store, folder_path):
    """把文件夹里的梦境导入日记（不做 AI 解析），返回新增条数。"""
    known_contents = {entry.content for entry in store.entries}
    imported = []
    for dream_date, file_path in collect_dream_files(folder_path):
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read().strip()
        if not content or content in known_contents:
            continue

        imported.append(schemas.DreamEntry(id=str(uuid.uuid4()), date=dream_date, content=content))
        known_contents.add(content)
        print(f"添加新梦境：{dream_date.date()}")

    # 旧日期的梦境按日期归位，而不是全部插到最前面
    if imported:
        store.merge(imported)
    return len(imported)

def sync_dreams_from_folders():
    if not DREAM_FOLDER_PATH or not os.path.isdir(DREAM_FOLDER_PATH):
        print("错误：梦境文件夹路径未设置或无效，请检查 .env 文件。")
        return

    engine = create_engine(DATABASE_URL)
    models.Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = SessionLocal()
    try:
        print(f"正在从 {DREAM_FOLDER_PATH} 同步梦境...")
        store = EntryStore(BlobStore(db), key=JOURNAL_KEY)
        store.load()
        added = import_dreams(store, DREAM_FOLDER_PATH)
    finally:
        db.close()
    print(f"同步完成！新增 {added} 条。")

if __name__ == "__main__":
    sync_dreams_from_folders()
