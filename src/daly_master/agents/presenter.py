"""幻灯片渲染（Presenter）：为当前页选择可视化元素，并绘制到 `.pptx` 画布或纯文本。

核心职责：
- `select_visual`：图表、占位图、无 三选一；
- `build_chart_spec`：按图表类型整形数据（柱状图可带第二序列，饼图按位置循环取色）；
- `SlideRenderer`：用 `python-pptx` 在内存中绘制标题、副标题、要点、页脚及选定的可视化元素；
- `render_text`：供终端界面使用的纯文本渲染。

实现要点：
- 不做数据计算，只做类型选择与记录整形；
- 渲染结果只保存在内存中，由调用方决定如何展示。
"""

import io
from typing import List, Optional, Union

from pptx import Presentation as PptxPresentation
from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE, XL_LEGEND_POSITION
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from daly_master.agents.image_generator import PlaceholderImageSource
from daly_master.common.types import ChartSeries, ChartSpec, ChartType, PlaceholderImage, Slide
from daly_master.common.utils import get_logger

logger = get_logger(__name__)

PIE_PALETTE = ("#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6")
PRIMARY_COLOR = "#3b82f6"
SECONDARY_COLOR = "#10b981"
FOOTER_LABEL = "Public Health Insight"

PPTX_CHART_TYPES = {
    ChartType.BAR: XL_CHART_TYPE.COLUMN_CLUSTERED,
    ChartType.LINE: XL_CHART_TYPE.LINE_MARKERS,
    ChartType.PIE: XL_CHART_TYPE.PIE,
}

SlideVisual = Union[ChartSpec, PlaceholderImage, None]


def build_chart_spec(slide: Slide) -> ChartSpec:
    """把幻灯片的图表记录整形为绘图组件的输入。"""
    records = slide.chart_data
    categories = [record.name for record in records]
    values = [record.value for record in records]

    if slide.chart_type is ChartType.BAR:
        series = [ChartSeries(name="value", values=values, colors=[PRIMARY_COLOR])]
        if any(record.secondary is not None for record in records):
            series.append(ChartSeries(
                name="secondary",
                values=[record.secondary for record in records],
                colors=[SECONDARY_COLOR],
            ))
    elif slide.chart_type is ChartType.LINE:
        series = [ChartSeries(name="value", values=values, colors=[PRIMARY_COLOR])]
    elif slide.chart_type is ChartType.PIE:
        colors = [PIE_PALETTE[i % len(PIE_PALETTE)] for i in range(len(records))]
        series = [ChartSeries(name="value", values=values, colors=colors)]
    else:
        raise ValueError(f"Slide {slide.id!r} has no chart to shape")

    return ChartSpec(chart_type=slide.chart_type, categories=categories, series=series)


def select_visual(slide: Slide, images: Optional[PlaceholderImageSource] = None) -> SlideVisual:
    """选择当前页的可视化元素：有图表数据时画图表，否则有配图提示时给出占位图，否则为空。"""
    if slide.has_chart:
        return build_chart_spec(slide)
    if slide.image_prompt:
        return (images or PlaceholderImageSource()).describe(slide.id)
    return None


def render_text(slide: Slide, index: int, total: int, visual: SlideVisual = None) -> str:
    """纯文本渲染，适用于终端。"""
    lines = [f"[{index + 1} / {total}] {slide.title}"]
    if slide.subtitle:
        lines.append(f"    {slide.subtitle}")
    lines.append("")
    lines.extend(f"  • {point}" for point in slide.bullet_points)

    if isinstance(visual, ChartSpec):
        lines.append("")
        lines.append(f"  [{visual.chart_type.value} chart]")
        for i, category in enumerate(visual.categories):
            cells = ", ".join(
                f"{series.name}={series.values[i]:g}" for series in visual.series if series.values[i] is not None
            )
            lines.append(f"    {category}: {cells}")
    elif isinstance(visual, PlaceholderImage):
        lines.append("")
        lines.append(f"  [image] {visual.url}")

    if slide.footer:
        lines.append("")
        lines.append(f"  {slide.footer}  |  {FOOTER_LABEL}")
    return "\n".join(lines)


def _rgb(hex_color: str) -> RGBColor:
    return RGBColor.from_string(hex_color.lstrip("#").upper())


class SlideRenderer:
    """用 `python-pptx` 把单页幻灯片绘制到 16:9 画布上。"""

    def __init__(self, images: Optional[PlaceholderImageSource] = None):
        self.images = images or PlaceholderImageSource()

    def new_deck(self) -> PptxPresentation:
        prs = PptxPresentation()
        prs.slide_width = Inches(13.33)
        prs.slide_height = Inches(7.5)
        return prs

    def render(self, slide: Slide, prs: Optional[PptxPresentation] = None) -> PptxPresentation:
        """把 `slide` 追加到 `prs`（缺省时新建）并返回该演示文稿对象。"""
        prs = prs if prs is not None else self.new_deck()
        # 6 号版式为空白页
        page = prs.slides.add_slide(prs.slide_layouts[6])
        width = prs.slide_width

        title_frame = page.shapes.add_textbox(Inches(0.6), Inches(0.4), width - Inches(1.2), Inches(1.0)).text_frame
        title_frame.word_wrap = True
        title_frame.text = slide.title
        title_para = title_frame.paragraphs[0]
        title_para.font.size = Pt(36)
        title_para.font.bold = True
        title_para.font.color.rgb = RGBColor(15, 23, 42)

        top = Inches(1.4)
        if slide.subtitle:
            sub_frame = page.shapes.add_textbox(Inches(0.6), top, width - Inches(1.2), Inches(0.6)).text_frame
            sub_frame.text = slide.subtitle
            sub_frame.paragraphs[0].font.size = Pt(20)
            sub_frame.paragraphs[0].font.color.rgb = _rgb("#2563eb")
            top = Inches(2.1)

        visual = select_visual(slide, self.images)
        text_width = (width - Inches(1.2)) if visual is None else Inches(6.0)

        body = page.shapes.add_textbox(Inches(0.6), top, text_width, Inches(4.5)).text_frame
        body.word_wrap = True
        for i, point in enumerate(slide.bullet_points):
            p = body.paragraphs[0] if i == 0 else body.add_paragraph()
            p.text = f"• {point}"
            p.font.size = Pt(18)
            p.font.color.rgb = RGBColor(51, 65, 85)
            p.space_after = Pt(10)

        left, cx, cy = Inches(7.0), Inches(5.7), Inches(4.2)
        if isinstance(visual, ChartSpec):
            self._add_chart(page, visual, left, top, cx, cy)
        elif isinstance(visual, PlaceholderImage):
            page.shapes.add_picture(self.images.render(visual.seed, slide.image_prompt), left, top, width=cx)

        if slide.footer:
            footer = page.shapes.add_textbox(
                Inches(0.6), prs.slide_height - Inches(0.8), width - Inches(1.2), Inches(0.5)
            ).text_frame
            footer.text = slide.footer
            footer.paragraphs[0].font.size = Pt(12)
            footer.paragraphs[0].font.color.rgb = RGBColor(148, 163, 184)
            label = footer.add_paragraph()
            label.text = FOOTER_LABEL
            label.alignment = PP_ALIGN.RIGHT
            label.font.size = Pt(12)
            label.font.bold = True
            label.font.color.rgb = _rgb(PRIMARY_COLOR)
        return prs

    def _add_chart(self, page, spec: ChartSpec, left, top, cx, cy) -> None:
        chart_data = CategoryChartData()
        chart_data.categories = spec.categories
        for series in spec.series:
            chart_data.add_series(series.name, series.values)

        chart = page.shapes.add_chart(PPTX_CHART_TYPES[spec.chart_type], left, top, cx, cy, chart_data).chart
        plot_series = chart.plots[0].series

        if spec.chart_type is ChartType.PIE:
            chart.has_legend = True
            chart.legend.position = XL_LEGEND_POSITION.BOTTOM
            chart.legend.include_in_layout = False
            for point_index, color in enumerate(spec.series[0].colors or []):
                fill = plot_series[0].points[point_index].format.fill
                fill.solid()
                fill.fore_color.rgb = _rgb(color)
            return

        chart.has_legend = len(spec.series) > 1
        for series, shaped in zip(plot_series, spec.series):
            color = _rgb(shaped.colors[0]) if shaped.colors else _rgb(PRIMARY_COLOR)
            if spec.chart_type is ChartType.LINE:
                series.smooth = True
                series.format.line.color.rgb = color
                series.format.line.width = Pt(3)
            else:
                series.format.fill.solid()
                series.format.fill.fore_color.rgb = color

    def to_bytes(self, slide: Slide) -> bytes:
        """渲染单页并返回 `.pptx` 字节，供外部查看器打开。"""
        stream = io.BytesIO()
        self.render(slide).save(stream)
        logger.debug(f"Rendered slide {slide.id!r} to pptx ({stream.tell()} bytes)")
        return stream.getvalue()
