"""AI-assisted enrichment of a single place record."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from curator.core.config import Settings, require_deepseek_key
from curator.core.models import LocationRecord, PlaceCategory, UpdateRequest
from curator.etl.extract import extract_place_data
from curator.vendors import deepseek

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"

_PROMPT_TEMPLATE = """你是一个专业的数据整理助手，专门帮助完善地点数据。

当前地点数据：
{record}

请完善这个地点的数据，包括：
1. 确保中文名称（nameCN）和英文名称（nameEN）准确
2. 提供完整、准确的地址（address）
3. 提供详细的地点介绍（description），使用简体中文
4. 根据地点类型生成合适的物理元数据（physicalMetadata）
5. 确保类别（category）正确，只能是：{categories}
6. 如果metadata中有经纬度，确保location字段包含这些坐标

**重要规则：**
- 所有数据以AI生成的为准进行替换
- 如果AI提供了某个字段，该字段会被完全替换为AI提供的值
- location字段必须保留（如果当前数据中有）
- 只输出JSON格式的数据，不要添加任何说明文字
- 使用代码块包裹JSON：```json\n{{...}}\n```

示例输出格式：
```json
{{
  "nameCN": "地点中文名称",
  "nameEN": "Place English Name",
  "category": "ATTRACTION",
  "address": "完整地址",
  "description": "详细的地点介绍",
  "rating": 4.5,
  "location": {{
    "lat": 64.1265,
    "lng": -21.8174
  }},
  "physicalMetadata": {{
    "difficulty": "EASY",
    "duration": "2小时",
    "accessType": "WALKING"
  }}
}}
```"""


@dataclass
class EnrichmentResult:
    place_id: int
    status: str
    update: Optional[UpdateRequest] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def build_system_prompt(record: LocationRecord) -> str:
    context = json.dumps(record.to_context(), ensure_ascii=False, indent=2, default=str)
    return _PROMPT_TEMPLATE.format(record=context, categories=" / ".join(PlaceCategory.values()))


def build_user_prompt(record: LocationRecord) -> str:
    return f"请完善这个地点的数据：{record.display_name}"


class PlaceEnricher:
    """Ask the generation endpoint to complete one record and extract the update."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def enrich(self, record: LocationRecord) -> EnrichmentResult:
        api_key = require_deepseek_key(self._settings)

        try:
            content = deepseek.chat_completion(
                build_system_prompt(record),
                build_user_prompt(record),
                api_key=api_key,
                api_url=self._settings.deepseek_api_url,
                model=self._settings.deepseek_model,
                temperature=self._settings.deepseek_temperature,
                timeout=self._settings.deepseek_timeout,
            )
        except (deepseek.GenerationError, requests.RequestException) as exc:
            logger.error("Enrichment failed for place %s (%s): %s", record.id, record.display_name, exc)
            return EnrichmentResult(place_id=record.id, status=STATUS_FAILED, error=str(exc))

        update = extract_place_data(content, record.metadata)
        if not update:
            logger.warning("No usable data in model response for place %s (%s)", record.id, record.display_name)
            return EnrichmentResult(place_id=record.id, status=STATUS_SKIPPED, error="no usable data")

        logger.info("Extracted %d fields for place %s (%s)", len(update), record.id, record.display_name)
        return EnrichmentResult(place_id=record.id, status=STATUS_OK, update=update)
