# main.py
import os
import logging
import threading
from typing import List

import google.generativeai as genai
from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from dotenv import load_dotenv

import models, schemas
from atlas import derive_graph
from dream_ai import DreamPipeline, PipelineFailure
from stats import aggregate
from store import STORAGE_KEY, BlobStore, EntryStore

# -----------------------------
# 环境 & 基础配置
# -----------------------------
load_dotenv()  # 读取 .env（本地开发用）

# -----------------------------
# 数据库配置（Postgres/SQLite）
# -----------------------------
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    # 本地开发回退到 SQLite
    print("警告：未找到云数据库地址，将使用本地SQLite文件。")
    DATABASE_URL = "sqlite:///./oneiro.db"

# 云上 Postgres 建议开启 TLS；如果 URL 中缺少 sslmode，则补上
if DATABASE_URL.startswith("postgresql://") and "sslmode=" not in DATABASE_URL:
    sep = "&" if "?" in DATABASE_URL else "?"
    DATABASE_URL = f"{DATABASE_URL}{sep}sslmode=require"

# 部分环境/旧驱动不支持 channel_binding=require，会导致 SSL 被断开
if "channel_binding=require" in DATABASE_URL:
    DATABASE_URL = DATABASE_URL.replace("&channel_binding=require", "").replace("?channel_binding=require", "?")

# 开启探活 & 连接回收，适配 serverless 空闲挂起
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=1800,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """FastAPI 依赖：确保每个请求用完即关闭会话。"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

models.Base.metadata.create_all(bind=engine)

JOURNAL_KEY = os.getenv("STORAGE_KEY", STORAGE_KEY)

def get_store(db: Session = Depends(get_db)) -> EntryStore:
    """每个请求都从存储重新读取完整的日记集合。"""
    store = EntryStore(BlobStore(db), key=JOURNAL_KEY)
    store.load()
    return store

# -----------------------------
# Gemini API 配置
# -----------------------------
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
if not GEMINI_API_KEY:
    print("警告：未设置 GEMINI_API_KEY，梦境解析接口将报错。")
genai.configure(api_key=GEMINI_API_KEY)

ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "gemini-2.5-flash")
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image")

pipeline = DreamPipeline(
    analysis_model=genai.GenerativeModel(ANALYSIS_MODEL),
    image_model=genai.GenerativeModel(IMAGE_MODEL),
)

def get_pipeline() -> DreamPipeline:
    return pipeline

# 同一时间只处理一条梦境提交
submission_lock = threading.Lock()

GENERIC_FAILURE = "The subconscious is clouded right now. Please try again."

# -----------------------------
# FastAPI 应用 & 中间件
# -----------------------------
app = FastAPI(title="Oneiro", description="Dream journal with AI interpretation")

# CORS：生产环境把前端域名放到 ORIGINS 环境变量（逗号分隔），否则默认 *
origins_env = os.getenv("ORIGINS", "").strip()
if origins_env:
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# 全局异常处理：保证前端总能拿到 JSON
# -----------------------------
logger = logging.getLogger("uvicorn.error")

@app.exception_handler(Exception)
async def all_exception_handler(request, exc: Exception):
    logger.exception(exc)
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "server_error", "detail": str(exc)[:200]},
    )

# -----------------------------
# 健康检查
# -----------------------------
@app.get("/health")
def health():
    with engine.begin() as conn:
        conn.exec_driver_sql("SELECT 1")
    return {"ok": True}

@app.get("/api/moods", response_model=List[str])
def list_moods():
    return [mood.value for mood in schemas.Mood]

# -----------------------------
# 梦境日记
# -----------------------------
@app.post("/api/dreams/", response_model=schemas.DreamEntry, status_code=201)
def create_dream(
    dream: schemas.DreamCreate,
    store: EntryStore = Depends(get_store),
    dream_pipeline: DreamPipeline = Depends(get_pipeline),
):
    if not submission_lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="submission_in_flight")
    try:
        # 拿到锁之后重新读取，避免覆盖上一条刚写入的记录
        store.load()
        print(f"--- 收到新的梦境记录（{len(dream.content)} 字）---")
        result = dream_pipeline.run(dream.content)
        if isinstance(result, PipelineFailure):
            # 不保存半成品，把原文带回去方便用户重试
            logger.error("❌ 梦境处理失败: %s", result.reason)
            return JSONResponse(
                status_code=502,
                content={
                    "ok": False,
                    "error": "dream_processing_failed",
                    "detail": GENERIC_FAILURE,
                    "content": result.content,
                },
            )
        return store.append(result.entry)
    finally:
        submission_lock.release()

@app.get("/api/dreams/", response_model=List[schemas.DreamEntry])
def read_dreams(skip: int = 0, limit: int = 100, store: EntryStore = Depends(get_store)):
    return store.entries[skip:skip + limit]

@app.get("/api/dreams/{dream_id}", response_model=schemas.DreamEntry)
def read_dream(dream_id: str, store: EntryStore = Depends(get_store)):
    entry = store.get(dream_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Dream not found")
    return entry

# -----------------------------
# 图谱 & 统计（每次都从完整集合重新计算）
# -----------------------------
@app.get("/api/atlas", response_model=schemas.AtlasResponse)
def read_atlas(store: EntryStore = Depends(get_store)):
    graph = derive_graph(store.entries)
    return schemas.AtlasResponse(**graph.model_dump(), total_dreams=len(store.entries))

@app.get("/api/stats", response_model=schemas.DreamStats)
def read_stats(store: EntryStore = Depends(get_store)):
    return aggregate(store.entries)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), log_level="info")
