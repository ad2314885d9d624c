"""Unit tests for navigation guards."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from pagespider.utils.page_guards import (
    BEFOREUNLOAD_MESSAGE,
    install_beforeunload_guard,
    rewrite_anchor_targets,
)


class TestRewriteAnchorTargets:
    """Tests for rewrite_anchor_targets."""

    @pytest.mark.asyncio
    async def test_sets_target_on_all_anchors(self):
        page = MagicMock()
        page.eval_on_selector_all = AsyncMock(return_value=12)

        count = await rewrite_anchor_targets(page)

        assert count == 12
        selector, script, arg = page.eval_on_selector_all.await_args.args
        assert selector == "a"
        assert "setAttribute" in script
        assert arg == ["target", "_blank"]

    @pytest.mark.asyncio
    async def test_custom_target_and_empty_page(self):
        page = MagicMock()
        page.eval_on_selector_all = AsyncMock(return_value=None)

        count = await rewrite_anchor_targets(page, target="spider")

        assert count == 0
        assert page.eval_on_selector_all.await_args.args[2] == ["target", "spider"]


class TestBeforeunloadGuard:
    """Tests for install_beforeunload_guard."""

    @pytest.mark.asyncio
    async def test_installs_handler(self):
        page = MagicMock()
        page.evaluate = AsyncMock()

        await install_beforeunload_guard(page)

        script, message = page.evaluate.await_args.args
        assert "onbeforeunload" in script
        assert message == BEFOREUNLOAD_MESSAGE

    @pytest.mark.asyncio
    async def test_evaluation_failure_propagates(self):
        """Test the caller decides what an evaluation failure means."""
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=Exception("Execution context was destroyed, most likely because of a navigation"))

        with pytest.raises(Exception, match="navigation"):
            await install_beforeunload_guard(page)
