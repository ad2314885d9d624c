"""
Utilities Package.

Provides URL identity helpers, page navigation guards and synthetic
interaction simulation.
"""

from .url_utils import (
    normalize_url,
    compute_request_hash,
    is_crawlable_url,
)

from .page_guards import (
    rewrite_anchor_targets,
    install_beforeunload_guard,
)

from .interaction import (
    InteractionSimulator,
    InteractionConfig,
    create_interaction_simulator,
)

__all__ = [
    # URL identity
    "normalize_url",
    "compute_request_hash",
    "is_crawlable_url",
    # Navigation guards
    "rewrite_anchor_targets",
    "install_beforeunload_guard",
    # Interaction simulation
    "InteractionSimulator",
    "InteractionConfig",
    "create_interaction_simulator",
]
