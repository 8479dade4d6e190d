"""视图控制器（Controller）：驱动生成、导航、全屏与错误重试的有限状态机。

状态：`IDLE` → `GENERATING` → `VIEWING` / `ERROR`，任何状态都不是终态。

重要约束与约定：
- 同一时间最多只有一次生成在进行：进入 `GENERATING` 的检查在任何 `await` 之前同步完成，
  处于 `GENERATING` 时的开始/重试请求一律拒绝；
- 生成失败（格式错误、传输错误或其他异常）一律进入 `ERROR`，并给出同一条用户提示，
  绝不停留在 `GENERATING`；
- 从 `VIEWING` 重新生成时，旧的演示文稿只在新结果成功后才被替换；
- 越界导航（最后一页再下一页、第一页再上一页、非法跳转）静默忽略。
"""

import asyncio
from typing import Optional

from daly_master.agents.generator import PresentationGenerator
from daly_master.common.config import DEFAULT_TOPIC
from daly_master.common.errors import GenerationError
from daly_master.common.types import Slide, ViewState, ViewStatus
from daly_master.common.utils import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Failed to generate content. Please try again."

NEXT_KEYS = ("ArrowRight", " ")
PREV_KEYS = ("ArrowLeft",)
EXIT_FULLSCREEN_KEYS = ("Escape",)


class ViewController:
    """单一所有者的界面状态机。

    作用：
    - 持有唯一的 `ViewState`，只在用户命令或生成结束时修改；
    - 对外提供开始/重试、翻页、跳转、全屏切换等命令；
    - 通过 `state` 返回状态副本，供界面渲染。
    """

    def __init__(self, generator: PresentationGenerator, topic: str = DEFAULT_TOPIC):
        self.generator = generator
        self.topic = topic
        self._state = ViewState()
        self._pending: Optional[asyncio.Task] = None

    @property
    def state(self) -> ViewState:
        return self._state.model_copy(deep=True)

    @property
    def current_slide(self) -> Optional[Slide]:
        slide = self._state.current_slide
        return slide.model_copy(deep=True) if slide else None

    # ---- 生成 ---------------------------------------------------------------

    def _begin(self, retry: bool = False) -> bool:
        """同步完成状态检查并进入 `GENERATING`，返回请求是否被接受。"""
        status = self._state.status
        if status is ViewStatus.GENERATING:
            logger.warning("Generation already in progress; ignoring request")
            return False
        if retry and status is not ViewStatus.ERROR:
            logger.info(f"Retry ignored in state {status.value}")
            return False
        logger.info(f"【状态】{status.value} -> {ViewStatus.GENERATING.value}")
        self._state.status = ViewStatus.GENERATING
        self._state.error_message = None
        return True

    async def _run_generation(self) -> None:
        try:
            presentation = await self.generator.generate(self.topic)
        except GenerationError as e:
            logger.error(f"【生成失败】{type(e).__name__}: {e}")
            self._fail()
        except Exception as e:
            logger.exception(f"【生成失败】Unexpected error during generation: {e}")
            self._fail()
        else:
            self._state.presentation = presentation
            self._state.current_index = 0
            self._state.status = ViewStatus.VIEWING
            logger.info(f"【状态】GENERATING -> VIEWING ({len(presentation.slides)} slides)")

    def _fail(self) -> None:
        self._state.status = ViewStatus.ERROR
        self._state.error_message = GENERIC_ERROR_MESSAGE
        logger.info("【状态】GENERATING -> ERROR")

    async def start_generation(self) -> bool:
        """开始（或重新开始）生成，等待结束；处于 `GENERATING` 时返回 False。"""
        if not self._begin():
            return False
        await self._run_generation()
        return True

    async def retry(self) -> bool:
        """仅在 `ERROR` 状态下重新发起生成。"""
        if not self._begin(retry=True):
            return False
        await self._run_generation()
        return True

    def request_generation(self) -> Optional[asyncio.Task]:
        """在当前事件循环中调度生成并立即返回任务；请求被拒绝时返回 None。"""
        if not self._begin():
            return None
        return self._schedule()

    def request_retry(self) -> Optional[asyncio.Task]:
        if not self._begin(retry=True):
            return None
        return self._schedule()

    def _schedule(self) -> asyncio.Task:
        self._pending = asyncio.get_running_loop().create_task(self._run_generation())
        return self._pending

    # ---- 导航 ---------------------------------------------------------------

    def next(self) -> None:
        if self._state.status is not ViewStatus.VIEWING:
            return
        if self._state.current_index < self._state.slide_count - 1:
            self._state.current_index += 1
        else:
            logger.debug("Already at the last slide")

    def prev(self) -> None:
        if self._state.status is not ViewStatus.VIEWING:
            return
        if self._state.current_index > 0:
            self._state.current_index -= 1
        else:
            logger.debug("Already at the first slide")

    def jump_to(self, index: int) -> None:
        if self._state.status is not ViewStatus.VIEWING:
            return
        if 0 <= index < self._state.slide_count:
            self._state.current_index = index
        else:
            logger.debug(f"Ignoring jump to out-of-range index {index}")

    # ---- 全屏 ---------------------------------------------------------------

    def toggle_fullscreen(self) -> None:
        self._state.fullscreen = not self._state.fullscreen

    def exit_fullscreen(self) -> None:
        if self._state.status is ViewStatus.VIEWING:
            self._state.fullscreen = False

    # ---- 键盘 ---------------------------------------------------------------

    def handle_key(self, key: str) -> None:
        """把键盘事件映射为导航命令，只在 `VIEWING` 状态下生效。"""
        if self._state.status is not ViewStatus.VIEWING:
            return
        if key in NEXT_KEYS:
            self.next()
        elif key in PREV_KEYS:
            self.prev()
        elif key in EXIT_FULLSCREEN_KEYS:
            self.exit_fullscreen()
