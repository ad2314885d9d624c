"""
Synthetic user interaction for rendered pages.

Two independent passes surface lazily rendered or event-driven content:

- monkey_click: directed clicks on visible clickable elements
  (buttons, onclick handlers, javascript: anchors, submit inputs)
- gremlins: randomized event fuzzing (mouse moves, stray clicks,
  scrolling, key presses, text typed into inputs)

Both passes are bounded by an event count and a wall-clock budget, and a
failure on one element or event never aborts the pass.
"""

import asyncio
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Optional

from pagespider.constants import (
    CLICKABLE_SELECTORS,
    ELEMENT_ACTION_TIMEOUT_MS,
    GREMLIN_KEYS,
    INTERACTION_TIME_BUDGET_SECONDS,
    MAX_GREMLIN_EVENTS,
    MAX_MONKEY_CLICKS,
)

logger = logging.getLogger(__name__)

# Consecutive failed gremlin events before the pass gives up
MAX_CONSECUTIVE_GREMLIN_FAILURES = 5

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


@dataclass
class InteractionConfig:
    """Configuration for synthetic interaction."""

    # Bounds
    max_clicks: int = MAX_MONKEY_CLICKS
    max_events: int = MAX_GREMLIN_EVENTS
    time_budget_seconds: float = INTERACTION_TIME_BUDGET_SECONDS
    action_timeout_ms: int = ELEMENT_ACTION_TIMEOUT_MS

    # Click configuration
    pre_click_delay_ms: int = 50
    max_click_offset_px: int = 3  # Random offset added to click position

    # Mouse movement configuration
    mouse_move_steps: int = 5
    mouse_move_jitter_px: int = 2

    # Pause between gremlin events
    min_event_delay_ms: int = 20
    max_event_delay_ms: int = 80

    # Typing configuration
    min_char_delay_ms: int = 10
    max_char_delay_ms: int = 40
    max_text_length: int = 12

    # Seed for reproducible fuzzing; None for a fresh sequence
    seed: Optional[int] = None

    # Skip mouse movement and delays
    fast_mode: bool = False


class InteractionSimulator:
    """
    Runs the directed click and random fuzzing passes on a page.

    Usage:
        simulator = InteractionSimulator()
        await asyncio.gather(
            simulator.monkey_click(page),
            simulator.gremlins(page),
        )
    """

    GREMLIN_SPECIES = ("move", "click", "scroll", "key", "type")
    GREMLIN_WEIGHTS = (3, 3, 2, 1, 1)

    def __init__(self, config: Optional[InteractionConfig] = None):
        """
        Initialize the simulator.

        Args:
            config: Configuration options. Uses defaults if not provided.
        """
        self.config = config or InteractionConfig()
        self._rng = random.Random(self.config.seed)

    def _delay(self, low_ms: int, high_ms: int) -> float:
        if self.config.fast_mode:
            return 0.0
        return self._rng.uniform(low_ms, high_ms) / 1000.0

    def _viewport(self, page) -> dict:
        return page.viewport_size or DEFAULT_VIEWPORT

    async def monkey_click(self, page) -> int:
        """
        Click visible clickable elements in document order.

        Args:
            page: Playwright page object

        Returns:
            Number of elements clicked
        """
        deadline = time.monotonic() + self.config.time_budget_seconds
        elements = await page.query_selector_all(", ".join(CLICKABLE_SELECTORS))

        clicked = 0
        for element in elements:
            if clicked >= self.config.max_clicks or time.monotonic() >= deadline:
                break
            try:
                if not await element.is_visible():
                    continue
                if await self._click_element(page, element):
                    clicked += 1
            except Exception as e:
                logger.debug(f"Monkey click failed: {e}")

        logger.debug(f"Monkey click pass clicked {clicked}/{len(elements)} candidates")
        return clicked

    async def _click_element(self, page, element) -> bool:
        """Click an element, moving the mouse to it first unless in fast mode."""
        if self.config.fast_mode:
            await element.click(timeout=self.config.action_timeout_ms, no_wait_after=True)
            return True

        box = await element.bounding_box()
        if not box:
            await element.click(timeout=self.config.action_timeout_ms, no_wait_after=True)
            return True

        offset_x = self._rng.uniform(-self.config.max_click_offset_px, self.config.max_click_offset_px)
        offset_y = self._rng.uniform(-self.config.max_click_offset_px, self.config.max_click_offset_px)
        target_x = box['x'] + box['width'] / 2 + offset_x
        target_y = box['y'] + box['height'] / 2 + offset_y

        await self._move_mouse_to(page, target_x, target_y)
        await asyncio.sleep(self.config.pre_click_delay_ms / 1000.0)
        await page.mouse.click(target_x, target_y)
        return True

    async def _move_mouse_to(self, page, target_x: float, target_y: float) -> None:
        """
        Move mouse to target position in jittered steps.

        Args:
            page: Playwright page object
            target_x: Target X coordinate
            target_y: Target Y coordinate
        """
        viewport = self._viewport(page)
        start_x = viewport['width'] / 2
        start_y = viewport['height'] / 2

        steps = max(1, self.config.mouse_move_steps)

        for i in range(1, steps + 1):
            progress = i / steps
            x = start_x + (target_x - start_x) * progress
            y = start_y + (target_y - start_y) * progress

            # Less jitter near the end for accuracy
            jitter_factor = 1 - progress
            jitter_x = self._rng.uniform(
                -self.config.mouse_move_jitter_px,
                self.config.mouse_move_jitter_px
            ) * jitter_factor
            jitter_y = self._rng.uniform(
                -self.config.mouse_move_jitter_px,
                self.config.mouse_move_jitter_px
            ) * jitter_factor

            await page.mouse.move(x + jitter_x, y + jitter_y)

    async def gremlins(self, page) -> int:
        """
        Inject randomized events into the page.

        Args:
            page: Playwright page object

        Returns:
            Number of events injected successfully
        """
        deadline = time.monotonic() + self.config.time_budget_seconds
        injected = 0
        failures = 0

        for _ in range(self.config.max_events):
            if time.monotonic() >= deadline:
                break

            species = self._rng.choices(self.GREMLIN_SPECIES, weights=self.GREMLIN_WEIGHTS)[0]
            try:
                await self._unleash(page, species)
                injected += 1
                failures = 0
            except Exception as e:
                failures += 1
                logger.debug(f"Gremlin '{species}' failed: {e}")
                if failures >= MAX_CONSECUTIVE_GREMLIN_FAILURES:
                    logger.debug("Too many failed gremlins, stopping fuzzing pass")
                    break

            await asyncio.sleep(self._delay(self.config.min_event_delay_ms, self.config.max_event_delay_ms))

        logger.debug(f"Gremlins pass injected {injected} events")
        return injected

    async def _unleash(self, page, species: str) -> None:
        viewport = self._viewport(page)
        x = self._rng.uniform(0, viewport['width'] - 1)
        y = self._rng.uniform(0, viewport['height'] - 1)

        if species == "move":
            await page.mouse.move(x, y, steps=self._rng.randint(1, 5))
        elif species == "click":
            await page.mouse.click(x, y)
        elif species == "scroll":
            await page.mouse.wheel(0, self._rng.choice((-1, 1)) * self._rng.randint(100, 600))
        elif species == "key":
            await page.keyboard.press(self._rng.choice(GREMLIN_KEYS))
        elif species == "type":
            await self._type_into_random_input(page)

    async def _type_into_random_input(self, page) -> None:
        """Type random text into a random visible text input."""
        inputs = await page.query_selector_all(
            "input:not([type]), input[type='text'], input[type='search'], input[type='email'], textarea"
        )
        if not inputs:
            return

        element = self._rng.choice(inputs)
        if not await element.is_visible():
            return

        length = self._rng.randint(1, self.config.max_text_length)
        text = "".join(self._rng.choice(string.ascii_letters + string.digits) for _ in range(length))

        await element.fill("", timeout=self.config.action_timeout_ms)
        for char in text:
            await element.type(char, timeout=self.config.action_timeout_ms)
            await asyncio.sleep(self._delay(self.config.min_char_delay_ms, self.config.max_char_delay_ms))


def create_interaction_simulator(
    fast_mode: bool = False,
    seed: Optional[int] = None,
) -> InteractionSimulator:
    """
    Create a configured InteractionSimulator instance.

    Args:
        fast_mode: Skip mouse movement and delays (for testing)
        seed: Seed for reproducible fuzzing

    Returns:
        Configured InteractionSimulator instance
    """
    config = InteractionConfig(
        fast_mode=fast_mode,
        seed=seed,
    )
    return InteractionSimulator(config)
