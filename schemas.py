# schemas.py
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # 对外 JSON 使用 camelCase（lucidityScore / imagePrompt / imageUrl）
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Mood(str, Enum):
    PEACEFUL = "peaceful"
    TENSE = "tense"
    SURREAL = "surreal"
    JOYFUL = "joyful"
    FEARFUL = "fearful"
    MYSTERIOUS = "mysterious"


class NodeKind(str, Enum):
    DREAM = "dream"
    THEME = "theme"
    SYMBOL = "symbol"


# -----------------------------
# 日记条目
# -----------------------------
class DreamAnalysis(CamelModel):
    interpretation: str = ""
    mood: Optional[Mood] = None
    symbols: List[str] = []
    lucidity_score: int = 0
    themes: List[str] = []
    image_prompt: str = ""

    @field_validator("symbols", "themes", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    @field_validator("interpretation", "image_prompt", mode="before")
    @classmethod
    def _none_as_blank(cls, value):
        return "" if value is None else value

    @field_validator("lucidity_score", mode="before")
    @classmethod
    def _none_as_zero(cls, value):
        return 0 if value is None else value


class DreamEntry(CamelModel):
    id: str
    date: datetime
    content: str
    analysis: Optional[DreamAnalysis] = None
    image_url: Optional[str] = None


class DreamCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


# -----------------------------
# 梦境图谱（Atlas）
# -----------------------------
class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    kind: NodeKind
    weight: int


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class AtlasGraph(CamelModel):
    nodes: List[GraphNode] = []
    edges: List[GraphEdge] = []
    theme_counts: Dict[str, int] = {}
    symbol_counts: Dict[str, int] = {}
    top_themes: List[Tuple[str, int]] = []
    top_symbols: List[Tuple[str, int]] = []
    analyzed_count: int = 0


class AtlasResponse(AtlasGraph):
    total_dreams: int


# -----------------------------
# 统计
# -----------------------------
class LucidityPoint(CamelModel):
    date: datetime
    score: int


class DreamStats(CamelModel):
    mood_counts: Dict[Mood, int] = {}
    lucidity_series: List[LucidityPoint] = []
    total_count: int = 0
    average_lucidity: float = 0.0
    dominant_mood: str = "—"
