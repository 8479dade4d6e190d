"""演示文稿生成（Generator）客户端：一次模型调用，把主题转换为结构化的幻灯片集合。

核心职责：
- 组装固定的系统指令（公共卫生专家视角 + 必需的 8 个主题 + 图表数据格式说明）；
- 通过 Gemini 以 `application/json` + 响应结构约束的方式请求输出；
- 将返回文本按 JSON 解析并校验为 `Presentation`，失败时明确抛错。

重要约束与约定：
- 每次 `generate` 只发出一次请求，不做重试（重试由用户在视图控制器中触发）；
- 不修复格式错误的 JSON，也不剥离 Markdown 包裹，直接视为 `GenerationFormatError`；
- 凭证缺失、网络异常、超时、限流等统一视为 `GenerationTransportError`。
"""

import json
from typing import Any, Dict, Optional

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import ValidationError

from daly_master.common.config import Settings
from daly_master.common.errors import GenerationFormatError, GenerationTransportError
from daly_master.common.types import Presentation
from daly_master.common.utils import get_logger, init_api_key

logger = get_logger(__name__)

REQUIRED_SLIDE_TOPICS = (
    "Title Slide.",
    "What are DALYs? (Definition of YLD + YLL).",
    "Low Back Pain: The Global Context.",
    "Why LBP is unique in DALY calculations (High YLD, Low YLL).",
    "Age-Standardized DALY Rates and Trends.",
    "Socio-economic Impact.",
    "Risk Factors (Occupational, Lifestyle).",
    "Prevention and Public Health Recommendations.",
)

# 模板中的花括号需要转义，避免被当作变量
SYSTEM_INSTRUCTION = (
    "You are a world-class public health expert specializing in musculoskeletal disorders and "
    "Global Burden of Disease (GBD) methodology.\n"
    "Your goal is to generate a comprehensive, academic, yet accessible presentation outline about "
    "DALYs (Disability-Adjusted Life Years) in Low Back Pain.\n"
    "Each slide must be detailed.\n"
    "Include slides for:\n"
    + "\n".join(f"{i}. {topic}" for i, topic in enumerate(REQUIRED_SLIDE_TOPICS, start=1))
    + "\n\n"
    "For slides with charts, provide realistic mock data based on actual GBD 2019/2021 study trends.\n"
    'Example chart data format: [{{"name": "1990", "value": 450}}, {{"name": "2019", "value": 600}}].'
)

HUMAN_MESSAGE = (
    "Generate a {slide_count}-slide presentation about: {topic}. "
    "Focus specifically on the burden of disease using DALYs."
)

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "slides": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "title": {"type": "string"},
                    "subtitle": {"type": "string"},
                    "bulletPoints": {"type": "array", "items": {"type": "string"}},
                    "imagePrompt": {"type": "string"},
                    "chartType": {
                        "type": "string",
                        "description": "One of: 'bar', 'pie', 'line', 'none'",
                    },
                    "chartData": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "value": {"type": "number"},
                                "secondary": {"type": "number", "description": "Optional secondary value"},
                            },
                        },
                    },
                    "footer": {"type": "string"},
                },
                "required": ["id", "title", "bulletPoints", "chartType"],
            },
        },
    },
    "required": ["slides"],
}


def parse_presentation(text: str) -> Presentation:
    """将模型返回的文本解析为 `Presentation`。

    参数：
        text: 模型输出的原始文本，应为符合 `RESPONSE_SCHEMA` 的 JSON。

    返回：
        校验通过的 `Presentation`。

    异常：
        GenerationFormatError：文本不是合法 JSON，或缺少必需字段、字段类型不符。
    """
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise GenerationFormatError(f"Invalid response format from AI: {e}", raw_text=text) from e

    try:
        return Presentation.model_validate(data)
    except ValidationError as e:
        raise GenerationFormatError(
            f"Response does not match the slide schema ({e.error_count()} errors)", raw_text=text
        ) from e


class PresentationGenerator:
    """生成客户端：负责一次性向 Gemini 请求整份演示文稿。"""

    def __init__(self, settings: Optional[Settings] = None, llm: Optional[Runnable] = None):
        """
        参数：
            settings: 模型、温度与凭证配置；缺省时从环境变量读取。
            llm: 可替换的聊天模型（任意 LangChain Runnable），缺省时按配置创建 Gemini 模型。
        """
        self.settings = settings or Settings.from_env()
        self._llm = llm
        self.prompt = ChatPromptTemplate.from_messages(
            [("system", SYSTEM_INSTRUCTION), ("human", HUMAN_MESSAGE)]
        )

    def _build_llm(self) -> Runnable:
        if self._llm is not None:
            return self._llm
        api_key = init_api_key(self.settings.google_api_key)
        try:
            self._llm = ChatGoogleGenerativeAI(
                model=self.settings.model,
                temperature=self.settings.temperature,
                google_api_key=api_key,
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
                # 重试由用户触发，客户端内部不重试
                max_retries=0,
            )
        except Exception as e:
            raise GenerationTransportError(f"Could not initialise Gemini client: {e}") from e
        return self._llm

    async def generate(self, topic: str) -> Presentation:
        """请求模型生成演示文稿。

        参数：
            topic: 演示文稿主题。

        返回：
            顺序与模型输出一致的 `Presentation`。

        异常：
            GenerationTransportError：凭证缺失或调用失败。
            GenerationFormatError：返回内容无法解析或不符合结构。
        """
        chain = self.prompt | self._build_llm() | StrOutputParser()
        logger.info(f"Generating presentation for topic: {topic}")
        try:
            text = await chain.ainvoke({"topic": topic, "slide_count": len(REQUIRED_SLIDE_TOPICS)})
        except Exception as e:
            logger.error(f"Generation call failed: {type(e).__name__}: {e}")
            raise GenerationTransportError(f"Generation call failed: {e}") from e

        try:
            presentation = parse_presentation(text)
        except GenerationFormatError as e:
            logger.error(f"Failed to parse Gemini response: {e}")
            raise
        logger.info(f"Presentation generated with {len(presentation.slides)} slides")
        return presentation
