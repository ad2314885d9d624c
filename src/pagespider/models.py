"""Data models for page spidering."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pagespider.constants import DEFAULT_METHOD, DOCUMENT_RESOURCE_TYPE
from pagespider.utils.url_utils import compute_request_hash


class SpiderState(Enum):
    """Lifecycle of a spider. FINISHED is absorbing."""
    UNINITIALIZED = "uninitialized"
    NAVIGATING = "navigating"
    INTERACTING = "interacting"
    REPORTING = "reporting"
    FINISHED = "finished"


@dataclass(frozen=True)
class DiscoveredRequest:
    """One observed or inferred network-addressable resource."""

    url: str
    method: str
    resource_type: str
    hash: str

    @classmethod
    def from_url(
        cls,
        url: str,
        method: str = DEFAULT_METHOD,
        resource_type: str = DOCUMENT_RESOURCE_TYPE,
    ) -> "DiscoveredRequest":
        """Build a request, computing its identity hash.

        Args:
            url: Absolute target URL
            method: HTTP method
            resource_type: Resource kind (document, script, image, xhr, ...)

        Returns:
            DiscoveredRequest with a stable identity hash
        """
        method = method.upper()
        return cls(
            url=url,
            method=method,
            resource_type=resource_type,
            hash=compute_request_hash(url, method),
        )

    def to_dict(self) -> dict[str, str]:
        """Serialize to the exchange schema."""
        return {
            "url": self.url,
            "method": self.method,
            "resourceType": self.resource_type,
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveredRequest":
        """Deserialize from the exchange schema.

        A missing hash is recomputed; a present one is trusted.
        """
        method = str(data.get("method") or DEFAULT_METHOD).upper()
        resource_type = data.get("resourceType") or data.get("resource_type") or DOCUMENT_RESOURCE_TYPE
        request_hash: Optional[str] = data.get("hash")
        if not request_hash:
            return cls.from_url(data["url"], method, resource_type)
        return cls(
            url=data["url"],
            method=method,
            resource_type=resource_type,
            hash=request_hash,
        )
