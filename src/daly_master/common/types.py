"""公共数据模型：描述演示文稿生成与展示过程中的核心结构。

包含：
- `ChartRecord` / `Slide` / `Presentation`：模型输出的幻灯片结构（线上字段为 camelCase）；
- `ViewStatus` / `ViewState`：视图控制器持有的界面状态；
- `ChartSeries` / `ChartSpec` / `PlaceholderImage`：渲染前选定的可视化元素。
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from daly_master.common.utils import get_logger

logger = get_logger(__name__)


class ChartType(str, Enum):
    """图表类型，`none` 表示不绘制图表。"""
    BAR = "bar"
    PIE = "pie"
    LINE = "line"
    NONE = "none"


class ChartRecord(BaseModel):
    """图表中的单个类目记录。"""
    model_config = ConfigDict(allow_inf_nan=False)

    name: str = Field(description="类目名称，例如年份")
    value: float = Field(description="主数值")
    secondary: Optional[float] = Field(description="可选的第二数值", default=None)

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value):
        # 模型常把年份写成数字
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class Slide(BaseModel):
    """单页幻灯片的内容结构。"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="会话内稳定的唯一标识", min_length=1)
    title: str = Field(description="幻灯片标题", min_length=1)
    subtitle: Optional[str] = Field(description="副标题", default=None)
    bullet_points: List[str] = Field(alias="bulletPoints", description="要点列表（按展示顺序）", min_length=1)
    image_prompt: Optional[str] = Field(alias="imagePrompt", description="配图提示词", default=None)
    chart_type: ChartType = Field(alias="chartType", description="图表类型")
    chart_data: List[ChartRecord] = Field(alias="chartData", description="图表数据", default_factory=list)
    footer: Optional[str] = Field(description="页脚文字", default=None)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("subtitle", "image_prompt", "footer", mode="before")
    @classmethod
    def _blank_as_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("chart_type", mode="before")
    @classmethod
    def _normalize_chart_type(cls, value):
        if value is None:
            return ChartType.NONE
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("chart_data", mode="before")
    @classmethod
    def _null_chart_data(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def _require_records_for_chart(self) -> "Slide":
        if self.chart_type is not ChartType.NONE and not self.chart_data:
            logger.warning(f"Slide {self.id!r} declares a {self.chart_type.value} chart without data; treating as 'none'")
            self.chart_type = ChartType.NONE
        return self

    @property
    def has_chart(self) -> bool:
        return self.chart_type is not ChartType.NONE and bool(self.chart_data)


class Presentation(BaseModel):
    """整份演示文稿：有序且非空的幻灯片列表。"""
    slides: List[Slide] = Field(description="幻灯片列表（插入顺序即展示顺序）", min_length=1)

    @model_validator(mode="after")
    def _unique_ids(self) -> "Presentation":
        seen = set()
        for slide in self.slides:
            if slide.id in seen:
                raise ValueError(f"duplicate slide id: {slide.id!r}")
            seen.add(slide.id)
        return self

    def __len__(self) -> int:
        return len(self.slides)


class ViewStatus(str, Enum):
    """视图控制器的状态。"""
    IDLE = "IDLE"
    GENERATING = "GENERATING"
    VIEWING = "VIEWING"
    ERROR = "ERROR"


class ViewState(BaseModel):
    """界面状态：仅由视图控制器修改，进程结束即丢弃。"""
    status: ViewStatus = ViewStatus.IDLE
    presentation: Optional[Presentation] = None
    current_index: int = Field(default=0, ge=0)
    error_message: Optional[str] = None
    fullscreen: bool = False

    @property
    def slide_count(self) -> int:
        return len(self.presentation.slides) if self.presentation else 0

    @property
    def current_slide(self) -> Optional[Slide]:
        if self.status is not ViewStatus.VIEWING or self.presentation is None:
            return None
        return self.presentation.slides[self.current_index]


class ChartSeries(BaseModel):
    """交给绘图组件的一组数据序列。"""
    name: str
    values: List[Optional[float]]
    colors: Optional[List[str]] = Field(description="逐点颜色（饼图使用）", default=None)


class ChartSpec(BaseModel):
    """已整形的图表输入。"""
    chart_type: ChartType
    categories: List[str]
    series: List[ChartSeries]


class PlaceholderImage(BaseModel):
    """以幻灯片 id 为种子的占位图。"""
    seed: str
    url: str
