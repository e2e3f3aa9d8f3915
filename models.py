# models.py
from sqlalchemy import Column, DateTime, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class Blob(Base):
    """键值存储：一个名字对应一整段文本（梦境日记以 JSON 数组整体保存）。"""
    __tablename__ = "blobs"

    name = Column(String(128), primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
