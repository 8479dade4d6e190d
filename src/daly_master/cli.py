"""命令行入口：`serve` 启动 MCP 服务，`present` 在终端中生成并浏览演示文稿。

终端命令：
- 回车 / `n`：下一页；`p`：上一页；数字：跳到第 N 页；
- `f`：切换全屏；`esc`：退出全屏；
- `r`：重新生成（出错时为重试）；`q`：退出。
"""

import asyncio
from pathlib import Path
from typing import Optional

import click

from daly_master.agents.controller import ViewController
from daly_master.agents.generator import PresentationGenerator
from daly_master.agents.presenter import SlideRenderer, render_text, select_visual
from daly_master.common.config import Settings
from daly_master.common.types import ViewStatus
from daly_master.common.utils import get_logger
from daly_master.mcp.server import build_server

logger = get_logger(__name__)

KEY_COMMANDS = {"": "ArrowRight", "n": "ArrowRight", "p": "ArrowLeft", "esc": "Escape"}
GENERATING_MESSAGE = "Synthesizing GBD Insights: calculating DALY metrics and building your slides..."
HELP_LINE = "[enter/n] next  [p] prev  [1-9] jump  [f] fullscreen  [esc] exit fullscreen  [r] regenerate  [q] quit"


def build_controller(topic: Optional[str] = None) -> ViewController:
    settings = Settings.from_env()
    return ViewController(PresentationGenerator(settings), topic=topic or settings.topic)


def show(controller: ViewController, renderer: SlideRenderer, snapshot: Optional[Path]) -> None:
    """按当前状态重新渲染界面。"""
    state = controller.state
    if state.status is ViewStatus.IDLE:
        click.echo("The Burden of Low Back Pain. Press [r] to generate the presentation.")
    elif state.status is ViewStatus.GENERATING:
        click.echo(GENERATING_MESSAGE)
    elif state.status is ViewStatus.ERROR:
        click.echo(f"Something went wrong: {state.error_message}  [r] try again")
    else:
        slide = state.current_slide
        if state.fullscreen:
            click.echo("[fullscreen]")
        click.echo(render_text(slide, state.current_index, state.slide_count, select_visual(slide, renderer.images)))
        if snapshot is not None:
            snapshot.write_bytes(renderer.to_bytes(slide))
        if not state.fullscreen:
            click.echo(HELP_LINE)


async def run_session(controller: ViewController, snapshot: Optional[Path] = None) -> None:
    """交互式会话：先生成，再逐条读取命令并重新渲染。"""
    renderer = SlideRenderer()
    click.echo(GENERATING_MESSAGE)
    await controller.start_generation()
    show(controller, renderer, snapshot)

    while True:
        try:
            command = click.prompt("", default="", show_default=False, prompt_suffix="> ").strip().lower()
        except click.exceptions.Abort:
            break
        if command == "q":
            break
        if command == "r":
            click.echo(GENERATING_MESSAGE)
            if controller.state.status is ViewStatus.ERROR:
                await controller.retry()
            else:
                await controller.start_generation()
        elif command == "f":
            controller.toggle_fullscreen()
        elif command.isdigit():
            controller.jump_to(int(command) - 1)
        elif command in KEY_COMMANDS:
            controller.handle_key(KEY_COMMANDS[command])
        else:
            click.echo(f"Unknown command: {command}")
            continue
        show(controller, renderer, snapshot)


@click.group()
def main():
    """DALY Master：AI 生成的 DALY 与腰痛主题演示文稿。"""


@main.command()
@click.option("--topic", default=None, help="Override the presentation topic.")
@click.option("--snapshot", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the displayed slide to this .pptx file after every command.")
def present(topic, snapshot):
    """在终端中生成并浏览演示文稿。"""
    controller = build_controller(topic)
    logger.info(f"Starting terminal session for topic: {controller.topic}")
    asyncio.run(run_session(controller, snapshot))


@main.command()
@click.option("--topic", default=None, help="Override the presentation topic.")
def serve(topic):
    """以 MCP Server 方式对外提供控制命令。"""
    controller = build_controller(topic)
    logger.info(f"Starting MCP server for topic: {controller.topic}")
    build_server(controller).run()


if __name__ == "__main__":
    main()
