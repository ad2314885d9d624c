"""
Navigation guards applied to a rendered page.

These keep the page under the spider's control while it is being
interacted with: anchors open new browsing contexts instead of replacing
the current document, and an optional beforeunload handler asks the
browser to prompt before the page navigates itself away.
"""

import logging

logger = logging.getLogger(__name__)

_SET_ATTRIBUTE_ON_ALL = """
(elements, [name, value]) => {
    elements.forEach((el) => el.setAttribute(name, value));
    return elements.length;
}
"""

_INSTALL_BEFOREUNLOAD = """
(message) => {
    window.onbeforeunload = function (event) {
        event.preventDefault();
        event.returnValue = message;
        return message;
    };
}
"""

BEFOREUNLOAD_MESSAGE = "Leave this page?"


async def rewrite_anchor_targets(page, target: str = "_blank") -> int:
    """
    Set the target attribute of every anchor on the page.

    Args:
        page: Playwright page object
        target: Browsing context name to open anchors in

    Returns:
        Number of anchors rewritten
    """
    count = await page.eval_on_selector_all("a", _SET_ATTRIBUTE_ON_ALL, ["target", target])
    logger.debug(f"Rewrote target={target} on {count} anchors")
    return count or 0


async def install_beforeunload_guard(page, message: str = BEFOREUNLOAD_MESSAGE) -> None:
    """
    Install a beforeunload handler on the page.

    Advisory only: a page that navigates through means that bypass unload
    handling (or a browser that suppresses the prompt) still leaves.

    Args:
        page: Playwright page object
        message: Prompt text offered to the browser
    """
    await page.evaluate(_INSTALL_BEFOREUNLOAD, message)
    logger.debug("Installed beforeunload guard")
