import json
import logging
from pathlib import Path
from typing import Any, Mapping

# 显式导入以触发注册
from . import ideal_gas       # ideal_gas
from . import lookup_table    # lut
from . import mlp             # mlp

from .registry import Surrogate, build

logger = logging.getLogger(__name__)


def build_surrogate(data: Mapping[str, Any]) -> Surrogate:
    # 兼容两种结构：{model, params} 和 {model, ...}
    params = data.get("params", data)
    surrogate = build(data["model"], params)
    logger.info("Built '%s' surrogate (%s)", data["model"], type(surrogate).__name__)
    return surrogate


def load_surrogate_from_json(json_path: str) -> Surrogate:
    p = Path(json_path)
    data = json.loads(p.read_text(encoding="utf-8"))
    return build_surrogate(data)
