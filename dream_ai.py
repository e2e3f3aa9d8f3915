# dream_ai.py
"""
Gemini 封装：先解析梦境（结构化 JSON），再根据 imagePrompt 生成配图。
两步串行、后一步依赖前一步，不重试、不超时、失败不保留半成品。
"""
import base64
import json
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from pydantic import ValidationError

import schemas

logger = logging.getLogger(__name__)

IMAGE_STYLE_PREFIX = "A cinematic, ethereal, surrealistic digital art piece illustrating: "
DEFAULT_IMAGE_MIME = "image/png"

# Gemini 结构化输出的 schema（字段名与前端一致，camelCase）
ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "interpretation": {
            "type": "STRING",
            "description": "A psychological and metaphorical interpretation of the dream.",
        },
        "mood": {
            "type": "STRING",
            "format": "enum",
            "enum": [m.value for m in schemas.Mood],
        },
        "symbols": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Key symbols found in the dream.",
        },
        "lucidityScore": {
            "type": "INTEGER",
            "description": "How clear/vivid the dream was (1-10).",
        },
        "themes": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Universal themes like 'flying', 'falling', 'searching'.",
        },
        "imagePrompt": {
            "type": "STRING",
            "description": "A high-quality, artistic, surrealistic prompt to generate an image of this dream scene.",
        },
    },
    "required": ["interpretation", "mood", "symbols", "lucidityScore", "themes", "imagePrompt"],
}


class DreamPipelineError(Exception):
    pass


class AnalysisError(DreamPipelineError):
    pass


class ImageGenerationError(DreamPipelineError):
    pass


# -----------------------------
# 工具函数
# -----------------------------
def extract_json_from_string(text: str) -> Optional[str]:
    """从任意文本中提取第一个 JSON 对象（尽量宽松）。"""
    m = re.search(r"\{.*\}", text, re.DOTALL)
    return m.group(0) if m else None


def build_analysis_prompt(content: str) -> str:
    return f'Analyze this dream content and return a structured JSON interpretation: "{content}"'


# -----------------------------
# 两次远程调用
# -----------------------------
def analyze_dream(model, content: str) -> schemas.DreamAnalysis:
    try:
        resp = model.generate_content(
            build_analysis_prompt(content),
            generation_config={
                "response_mime_type": "application/json",
                "response_schema": ANALYSIS_SCHEMA,
            },
        )
        text = resp.text
    except Exception as e:
        raise AnalysisError(f"AI API Error: {e}") from e

    json_string = extract_json_from_string((text or "").strip())
    if not json_string:
        raise AnalysisError("LLM 未返回可解析的 JSON")

    try:
        return schemas.DreamAnalysis.model_validate(json.loads(json_string))
    except (json.JSONDecodeError, ValidationError) as e:
        raise AnalysisError(f"Malformed analysis: {e}") from e


def generate_dream_image(model, prompt: str) -> str:
    """返回 data URL（data:image/png;base64,...）。"""
    try:
        resp = model.generate_content(IMAGE_STYLE_PREFIX + prompt)
    except Exception as e:
        raise ImageGenerationError(f"AI API Error: {e}") from e

    candidates = getattr(resp, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    parts = getattr(content, "parts", None) or []
    for part in parts:
        blob = getattr(part, "inline_data", None)
        if blob is None or not blob.data:
            continue
        data = blob.data
        if isinstance(data, bytes):
            data = base64.b64encode(data).decode("ascii")
        mime = getattr(blob, "mime_type", None) or DEFAULT_IMAGE_MIME
        return f"data:{mime};base64,{data}"

    raise ImageGenerationError("Failed to generate image")


# -----------------------------
# 流水线：成功返回新条目，失败返回原因 + 原文
# -----------------------------
@dataclass
class PipelineSuccess:
    entry: schemas.DreamEntry


@dataclass
class PipelineFailure:
    reason: str
    content: str


PipelineResult = Union[PipelineSuccess, PipelineFailure]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DreamPipeline:
    def __init__(
        self,
        analysis_model,
        image_model,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.analysis_model = analysis_model
        self.image_model = image_model
        self.clock = clock
        self.id_factory = id_factory

    def run(self, content: str) -> PipelineResult:
        try:
            print("▶️ 调用 Gemini 解析梦境 ...")
            analysis = analyze_dream(self.analysis_model, content)
            print("🎨 调用 Gemini 生成配图 ...")
            image_url = generate_dream_image(self.image_model, analysis.image_prompt)
        except DreamPipelineError as e:
            logger.warning("Dream processing failed: %s", e)
            return PipelineFailure(reason=str(e), content=content)

        entry = schemas.DreamEntry(
            id=self.id_factory(),
            date=self.clock(),
            content=content,
            analysis=analysis,
            image_url=image_url,
        )
        print("✅ 解析与配图完成。")
        return PipelineSuccess(entry=entry)
