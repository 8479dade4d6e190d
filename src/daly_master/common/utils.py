"""公共工具函数：统一日志配置与外部 API Key 检查。

包含：
- `get_logger`：配置并返回指定名称的 `logging.Logger`；
- `init_api_key`：检查 Gemini 调用所需的凭证，缺失时抛出传输错误。
"""

import logging
from typing import Optional

from pydantic import SecretStr

from daly_master.common.errors import GenerationTransportError


def get_logger(name: str) -> logging.Logger:
    """获取带统一格式的 Logger。

    行为：
    - 设置日志级别为 INFO；
    - 设置日志格式包含时间、模块名、级别与消息；
    - 返回指定名称的 Logger。
    """
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    return logging.getLogger(name)


def init_api_key(api_key: Optional[SecretStr]) -> SecretStr:
    """检查外部模型所需的 API Key 是否存在。

    凭证缺失视为调用无法完成，因此抛出 `GenerationTransportError`，
    由上层统一归入“生成失败”。
    """
    if api_key is None or not api_key.get_secret_value().strip():
        raise GenerationTransportError("GOOGLE_API_KEY environment variable is not set")
    return api_key
