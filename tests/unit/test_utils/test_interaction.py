"""Unit tests for InteractionSimulator.

Tests the directed click pass and the randomized fuzzing pass.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from pagespider.utils.interaction import (
    InteractionConfig,
    InteractionSimulator,
    create_interaction_simulator,
)


def make_page(elements=None, inputs=None):
    page = MagicMock()
    page.viewport_size = {"width": 800, "height": 600}
    page.mouse.move = AsyncMock()
    page.mouse.click = AsyncMock()
    page.mouse.wheel = AsyncMock()
    page.keyboard.press = AsyncMock()

    async def query_selector_all(selector):
        if selector.startswith("input"):
            return inputs or []
        return elements or []

    page.query_selector_all = AsyncMock(side_effect=query_selector_all)
    return page


def make_element(visible=True, box=None):
    element = MagicMock()
    element.is_visible = AsyncMock(return_value=visible)
    element.bounding_box = AsyncMock(return_value=box)
    element.click = AsyncMock()
    element.fill = AsyncMock()
    element.type = AsyncMock()
    return element


@pytest.fixture
def fast_simulator():
    return InteractionSimulator(InteractionConfig(fast_mode=True, seed=7))


class TestInteractionConfig:
    """Tests for InteractionConfig."""

    def test_defaults(self):
        config = InteractionConfig()
        assert config.max_clicks > 0
        assert config.max_events > 0
        assert config.time_budget_seconds > 0
        assert config.fast_mode is False
        assert config.seed is None

    def test_factory(self):
        simulator = create_interaction_simulator(fast_mode=True, seed=3)
        assert simulator.config.fast_mode is True
        assert simulator.config.seed == 3


class TestMonkeyClick:
    """Tests for the directed click pass."""

    @pytest.mark.asyncio
    async def test_clicks_visible_elements_only(self, fast_simulator):
        """Test hidden elements are skipped."""
        visible, hidden = make_element(), make_element(visible=False)
        page = make_page(elements=[visible, hidden])

        clicked = await fast_simulator.monkey_click(page)

        assert clicked == 1
        visible.click.assert_awaited_once()
        hidden.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_respects_click_limit(self):
        simulator = InteractionSimulator(InteractionConfig(fast_mode=True, max_clicks=2))
        elements = [make_element() for _ in range(5)]

        clicked = await simulator.monkey_click(make_page(elements=elements))

        assert clicked == 2
        assert sum(e.click.await_count for e in elements) == 2

    @pytest.mark.asyncio
    async def test_failing_element_does_not_abort(self, fast_simulator):
        """Test one element raising leaves the rest of the pass running."""
        broken, working = make_element(), make_element()
        broken.click.side_effect = Exception("Element is not attached to the DOM")

        clicked = await fast_simulator.monkey_click(make_page(elements=[broken, working]))

        assert clicked == 1
        working.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mouse_path_used_outside_fast_mode(self):
        """Test a clickable with a bounding box is clicked through the mouse."""
        simulator = InteractionSimulator(InteractionConfig(seed=1, pre_click_delay_ms=0, mouse_move_steps=3))
        element = make_element(box={"x": 100, "y": 100, "width": 40, "height": 20})
        page = make_page(elements=[element])

        clicked = await simulator.monkey_click(page)

        assert clicked == 1
        assert page.mouse.move.await_count == 3
        x, y = page.mouse.click.await_args.args
        assert 117 <= x <= 123
        assert 107 <= y <= 113
        element.click.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_time_budget_clicks_nothing(self):
        simulator = InteractionSimulator(InteractionConfig(fast_mode=True, time_budget_seconds=0))

        clicked = await simulator.monkey_click(make_page(elements=[make_element()]))

        assert clicked == 0


class TestGremlins:
    """Tests for the randomized fuzzing pass."""

    @pytest.mark.asyncio
    async def test_injects_bounded_events(self):
        simulator = InteractionSimulator(InteractionConfig(fast_mode=True, max_events=10, seed=42))
        page = make_page(inputs=[make_element()])

        injected = await simulator.gremlins(page)

        assert injected == 10

    @pytest.mark.asyncio
    async def test_same_seed_same_events(self):
        """Test fuzzing is reproducible with a seed."""
        first_page, second_page = make_page(), make_page()

        await InteractionSimulator(InteractionConfig(fast_mode=True, max_events=15, seed=9)).gremlins(first_page)
        await InteractionSimulator(InteractionConfig(fast_mode=True, max_events=15, seed=9)).gremlins(second_page)

        assert first_page.mouse.move.await_args_list == second_page.mouse.move.await_args_list
        assert first_page.mouse.click.await_args_list == second_page.mouse.click.await_args_list
        assert first_page.keyboard.press.await_args_list == second_page.keyboard.press.await_args_list

    @pytest.mark.asyncio
    async def test_stops_after_consecutive_failures(self):
        """Test a page that rejects every event ends the pass early."""
        simulator = InteractionSimulator(InteractionConfig(fast_mode=True, max_events=40, seed=1))
        page = make_page()
        page.mouse.move.side_effect = Exception("Target closed")
        page.mouse.click.side_effect = Exception("Target closed")
        page.mouse.wheel.side_effect = Exception("Target closed")
        page.keyboard.press.side_effect = Exception("Target closed")
        page.query_selector_all.side_effect = Exception("Target closed")

        injected = await simulator.gremlins(page)

        assert injected == 0
        calls = (
            page.mouse.move.await_count
            + page.mouse.click.await_count
            + page.mouse.wheel.await_count
            + page.keyboard.press.await_count
            + page.query_selector_all.await_count
        )
        assert calls == 5

    @pytest.mark.asyncio
    async def test_typing_targets_visible_input(self, fast_simulator):
        element = make_element()
        page = make_page(inputs=[element])

        await fast_simulator._type_into_random_input(page)

        element.fill.assert_awaited_once()
        assert 1 <= element.type.await_count <= fast_simulator.config.max_text_length

    @pytest.mark.asyncio
    async def test_typing_without_inputs_is_noop(self, fast_simulator):
        page = make_page()

        await fast_simulator._type_into_random_input(page)

        page.keyboard.press.assert_not_awaited()
