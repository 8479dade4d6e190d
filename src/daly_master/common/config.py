"""运行配置：从环境变量（及 `.env` 文件）读取生成参数。

环境变量：
- `GOOGLE_API_KEY`（兼容 `API_KEY`）：Gemini 凭证；
- `DALY_MASTER_MODEL`：模型名称；
- `DALY_MASTER_TEMPERATURE`：采样温度；
- `DALY_MASTER_TOPIC`：演示文稿主题。
"""

import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, SecretStr

DEFAULT_MODEL = "gemini-3-pro-preview"
DEFAULT_TOPIC = "DALYs in Low Back Pain: Comprehensive Explanation and Global Impact"


class Settings(BaseModel):
    """生成客户端与界面共享的配置。"""
    google_api_key: Optional[SecretStr] = Field(description="Gemini API Key", default=None)
    model: str = Field(description="Gemini 模型名称", default=DEFAULT_MODEL)
    temperature: float = Field(description="采样温度", default=0.7, ge=0.0, le=2.0)
    topic: str = Field(description="演示文稿主题", default=DEFAULT_TOPIC, min_length=1)

    @classmethod
    def from_env(cls) -> "Settings":
        """加载 `.env` 后根据环境变量构造配置，未设置的项使用默认值。"""
        load_dotenv(find_dotenv(usecwd=True))
        values = {}
        api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY")
        if api_key:
            values["google_api_key"] = api_key
        if os.getenv("DALY_MASTER_MODEL"):
            values["model"] = os.environ["DALY_MASTER_MODEL"]
        if os.getenv("DALY_MASTER_TEMPERATURE"):
            values["temperature"] = os.environ["DALY_MASTER_TEMPERATURE"]
        if os.getenv("DALY_MASTER_TOPIC"):
            values["topic"] = os.environ["DALY_MASTER_TOPIC"]
        return cls(**values)
