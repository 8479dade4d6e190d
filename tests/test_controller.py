"""
Tests for the view controller state machine.
"""

import asyncio
import json
from unittest.mock import AsyncMock, Mock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.runnables import RunnableLambda

from daly_master.agents.controller import GENERIC_ERROR_MESSAGE, ViewController
from daly_master.agents.generator import PresentationGenerator
from daly_master.common.config import DEFAULT_TOPIC, Settings
from daly_master.common.errors import GenerationFormatError, GenerationTransportError
from daly_master.common.types import ViewStatus


def controller_with(*outcomes) -> ViewController:
    """Controller whose generator yields the given results or raises the given errors in turn."""
    generator = Mock()
    generator.generate = AsyncMock(side_effect=list(outcomes))
    return ViewController(generator)


class GatedGenerator:
    """Generator that blocks until released, to observe the GENERATING state."""

    def __init__(self, result):
        self.result = result
        self.calls = 0
        self.release = asyncio.Event()

    async def generate(self, topic):
        self.calls += 1
        await self.release.wait()
        return self.result


async def viewing_controller(presentation) -> ViewController:
    controller = controller_with(presentation)
    await controller.start_generation()
    return controller


class TestGeneration:
    """Tests for start/retry transitions."""

    @pytest.mark.asyncio
    async def test_success_enters_viewing(self, presentation):
        """Test that an 8-slide result shows slide 1 of 8."""
        controller = controller_with(presentation)

        assert await controller.start_generation() is True

        state = controller.state
        assert state.status is ViewStatus.VIEWING
        assert state.current_index == 0
        assert state.slide_count == 8
        assert controller.current_slide.id == "slide-1"
        controller.generator.generate.assert_awaited_once_with(DEFAULT_TOPIC)

    @pytest.mark.asyncio
    async def test_timeout_then_retry(self, presentation):
        """Test that a timeout leads to ERROR and retry recovers."""
        controller = controller_with(GenerationTransportError("timeout"), presentation)

        await controller.start_generation()

        state = controller.state
        assert state.status is ViewStatus.ERROR
        assert state.error_message == GENERIC_ERROR_MESSAGE

        assert await controller.retry() is True

        state = controller.state
        assert state.status is ViewStatus.VIEWING
        assert state.error_message is None
        assert state.presentation == presentation
        assert controller.generator.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_format_and_transport_errors_look_the_same(self):
        """Test that both failure kinds surface the same message."""
        format_failure = controller_with(GenerationFormatError("bad json"))
        transport_failure = controller_with(GenerationTransportError("503"))

        await format_failure.start_generation()
        await transport_failure.start_generation()

        assert format_failure.state.error_message == transport_failure.state.error_message

    @pytest.mark.asyncio
    async def test_unexpected_exception_resolves_to_error(self):
        """Test that the controller never stays in GENERATING."""
        controller = controller_with(RuntimeError("boom"))

        await controller.start_generation()

        assert controller.state.status is ViewStatus.ERROR

    @pytest.mark.asyncio
    async def test_malformed_model_output_resolves_to_error(self, eight_slide_payload):
        """Test the real generator with a response missing a required field."""
        del eight_slide_payload["slides"][0]["title"]
        generator = PresentationGenerator(Settings(), llm=FakeListChatModel(responses=[json.dumps(eight_slide_payload)]))
        controller = ViewController(generator)

        await controller.start_generation()

        assert controller.state.status is ViewStatus.ERROR

    @pytest.mark.asyncio
    async def test_transport_failure_through_real_generator(self):
        """Test the real generator with a failing model call."""
        async def timeout(_):
            raise TimeoutError()

        controller = ViewController(PresentationGenerator(Settings(), llm=RunnableLambda(timeout)))

        await controller.start_generation()

        assert controller.state.status is ViewStatus.ERROR
        assert controller.state.error_message

    @pytest.mark.asyncio
    async def test_retry_ignored_outside_error(self, presentation):
        """Test that retry only applies in ERROR."""
        controller = controller_with(presentation)

        assert await controller.retry() is False
        assert controller.state.status is ViewStatus.IDLE
        controller.generator.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_restart_from_error(self, presentation):
        """Test that start is also accepted from ERROR."""
        controller = controller_with(GenerationTransportError("x"), presentation)
        await controller.start_generation()

        assert await controller.start_generation() is True
        assert controller.state.status is ViewStatus.VIEWING

    @pytest.mark.asyncio
    async def test_regenerate_keeps_presentation_on_failure(self, presentation, make_presentation):
        """Test that the prior presentation is only replaced on success."""
        replacement = make_presentation(3)
        controller = controller_with(presentation, GenerationFormatError("bad"), replacement)
        await controller.start_generation()
        controller.next()

        await controller.start_generation()
        assert controller.state.status is ViewStatus.ERROR
        assert controller.state.presentation == presentation

        await controller.retry()
        assert controller.state.presentation == replacement
        assert controller.state.current_index == 0

    @pytest.mark.asyncio
    async def test_duplicate_trigger_rejected(self, presentation):
        """Test that only one generation may be in flight."""
        generator = GatedGenerator(presentation)
        controller = ViewController(generator)

        task = controller.request_generation()
        assert task is not None
        assert controller.state.status is ViewStatus.GENERATING

        assert controller.request_generation() is None
        assert controller.request_retry() is None
        assert await controller.start_generation() is False

        generator.release.set()
        await task

        assert generator.calls == 1
        assert controller.state.status is ViewStatus.VIEWING

    @pytest.mark.asyncio
    async def test_request_retry_schedules_generation(self, presentation):
        """Test the fire-and-forget retry command."""
        controller = controller_with(GenerationTransportError("x"), presentation)
        await controller.start_generation()

        task = controller.request_retry()
        await task

        assert controller.state.status is ViewStatus.VIEWING


class TestNavigation:
    """Tests for next/prev/jump."""

    @pytest.mark.asyncio
    async def test_next_clamps_at_last(self, presentation):
        """Test that next() N times from 0 stops at N-1."""
        controller = await viewing_controller(presentation)
        count = len(presentation.slides)

        for _ in range(count):
            controller.next()
        assert controller.state.current_index == count - 1

        controller.next()
        assert controller.state.current_index == count - 1

    @pytest.mark.asyncio
    async def test_prev_at_first_is_noop(self, presentation):
        """Test that prev() at index 0 leaves the state unchanged."""
        controller = await viewing_controller(presentation)
        before = controller.state

        controller.prev()

        assert controller.state == before

    @pytest.mark.asyncio
    async def test_prev_moves_back(self, presentation):
        """Test moving back one slide."""
        controller = await viewing_controller(presentation)
        controller.jump_to(5)

        controller.prev()

        assert controller.state.current_index == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index,expected", [(3, 3), (7, 7), (8, 0), (-1, 0), (100, 0)])
    async def test_jump_to(self, presentation, index, expected):
        """Test jumping within and outside bounds."""
        controller = await viewing_controller(presentation)

        controller.jump_to(index)

        assert controller.state.current_index == expected

    def test_navigation_ignored_when_idle(self):
        """Test that navigation outside VIEWING does nothing."""
        controller = controller_with()

        controller.next()
        controller.prev()
        controller.jump_to(2)

        assert controller.state.current_index == 0
        assert controller.state.status is ViewStatus.IDLE

    @pytest.mark.asyncio
    async def test_state_is_a_copy(self, presentation):
        """Test that mutating a read state does not affect the controller."""
        controller = await viewing_controller(presentation)

        snapshot = controller.state
        snapshot.current_index = 5

        assert controller.state.current_index == 0


class TestFullscreen:
    """Tests for fullscreen handling."""

    def test_toggle_twice_restores(self):
        """Test that toggling twice is idempotent."""
        controller = controller_with()

        controller.toggle_fullscreen()
        assert controller.state.fullscreen is True
        controller.toggle_fullscreen()
        assert controller.state.fullscreen is False

    @pytest.mark.asyncio
    async def test_exit_fullscreen_while_viewing(self, presentation):
        """Test that cancel leaves fullscreen while viewing."""
        controller = await viewing_controller(presentation)
        controller.toggle_fullscreen()

        controller.exit_fullscreen()

        assert controller.state.fullscreen is False
        assert controller.state.status is ViewStatus.VIEWING


class TestKeyHandling:
    """Tests for keyboard mapping."""

    @pytest.mark.asyncio
    async def test_arrow_and_space_keys(self, presentation):
        """Test ArrowRight, space and ArrowLeft."""
        controller = await viewing_controller(presentation)

        controller.handle_key("ArrowRight")
        controller.handle_key(" ")
        assert controller.state.current_index == 2

        controller.handle_key("ArrowLeft")
        assert controller.state.current_index == 1

    @pytest.mark.asyncio
    async def test_escape_exits_fullscreen(self, presentation):
        """Test that Escape clears fullscreen."""
        controller = await viewing_controller(presentation)
        controller.toggle_fullscreen()

        controller.handle_key("Escape")

        assert controller.state.fullscreen is False

    @pytest.mark.asyncio
    async def test_other_keys_ignored(self, presentation):
        """Test that unmapped keys change nothing."""
        controller = await viewing_controller(presentation)
        before = controller.state

        controller.handle_key("Enter")

        assert controller.state == before

    def test_keys_ignored_when_not_viewing(self):
        """Test that keys do nothing outside VIEWING."""
        controller = controller_with()
        controller.toggle_fullscreen()

        controller.handle_key("Escape")

        assert controller.state.fullscreen is True
