"""MCP Server 定义：把视图控制器的命令以工具形式暴露给 MCP 客户端。

主要职责：
- 使用 FastMCP 创建服务器实例，注册开始/重试、翻页、跳转、全屏、按键与状态查询工具；
- 开始与重试为“发出即返回”：在服务器事件循环中调度生成，客户端通过 `get_state` 轮询；
- 每个工具都返回最新的状态快照（含当前页内容与选定的可视化元素）。
"""

from typing import Any, Dict

from fastmcp import FastMCP

from daly_master.agents.controller import ViewController
from daly_master.agents.generator import PresentationGenerator
from daly_master.agents.presenter import select_visual
from daly_master.common.config import Settings
from daly_master.common.utils import get_logger

logger = get_logger(__name__)


def describe_state(controller: ViewController) -> Dict[str, Any]:
    """把当前状态整理成可 JSON 序列化的字典。"""
    state = controller.state
    slide = state.current_slide
    visual = select_visual(slide) if slide else None
    return {
        "status": state.status.value,
        "current_index": state.current_index,
        "slide_count": state.slide_count,
        "fullscreen": state.fullscreen,
        "error_message": state.error_message,
        "slide": slide.model_dump(mode="json", by_alias=True) if slide else None,
        "visual": visual.model_dump(mode="json") if visual else None,
    }


def build_server(controller: ViewController) -> FastMCP:
    """为给定的控制器创建 MCP 服务器。"""
    mcp = FastMCP("DALY Master")

    @mcp.tool()
    async def start_generation() -> Dict[str, Any]:
        """开始（或重新开始）生成演示文稿。生成进行中时请求会被忽略。"""
        accepted = controller.request_generation() is not None
        return {"accepted": accepted, **describe_state(controller)}

    @mcp.tool()
    async def retry() -> Dict[str, Any]:
        """生成失败后重试。"""
        accepted = controller.request_retry() is not None
        return {"accepted": accepted, **describe_state(controller)}

    @mcp.tool()
    def next_slide() -> Dict[str, Any]:
        """下一页（最后一页时无变化）。"""
        controller.next()
        return describe_state(controller)

    @mcp.tool()
    def prev_slide() -> Dict[str, Any]:
        """上一页（第一页时无变化）。"""
        controller.prev()
        return describe_state(controller)

    @mcp.tool()
    def jump_to(index: int) -> Dict[str, Any]:
        """跳转到指定页（从 0 开始），越界时无变化。"""
        controller.jump_to(index)
        return describe_state(controller)

    @mcp.tool()
    def toggle_fullscreen() -> Dict[str, Any]:
        """切换全屏。"""
        controller.toggle_fullscreen()
        return describe_state(controller)

    @mcp.tool()
    def exit_fullscreen() -> Dict[str, Any]:
        """退出全屏。"""
        controller.exit_fullscreen()
        return describe_state(controller)

    @mcp.tool()
    def press_key(key: str) -> Dict[str, Any]:
        """模拟键盘：ArrowRight/空格 下一页，ArrowLeft 上一页，Escape 退出全屏。"""
        controller.handle_key(key)
        return describe_state(controller)

    @mcp.tool()
    def get_state() -> Dict[str, Any]:
        """读取当前状态。"""
        return describe_state(controller)

    @mcp.tool()
    def current_slide() -> Dict[str, Any]:
        """读取当前页内容；未处于浏览状态时返回空内容。"""
        state = describe_state(controller)
        return {"slide": state["slide"], "visual": state["visual"]}

    logger.info("MCP server 'DALY Master' ready")
    return mcp


def create_default_server() -> FastMCP:
    """按环境变量配置创建控制器与服务器。"""
    settings = Settings.from_env()
    controller = ViewController(PresentationGenerator(settings), topic=settings.topic)
    return build_server(controller)


if __name__ == "__main__":
    # 以默认配置启动 MCP Server（FastMCP 会启动内置事件循环）
    create_default_server().run()
