from dotenv import load_dotenv
from dataclasses import dataclass, field
from pathlib import Path
import json
import os

from pagespider.constants import (
    DEFAULT_NAVIGATION_INTERRUPTED_MARKERS,
    DEFAULT_NAVIGATION_MARGIN_MS,
    DEFAULT_RUN_GRACE_MS,
    DEFAULT_SETTLE_DELAY_MS,
)

load_dotenv()  # Loads variables from .env file


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    HEADLESS = _env_bool("PAGESPIDER_HEADLESS", True)
    BROWSER_TYPE = os.getenv("PAGESPIDER_BROWSER_TYPE", "chromium")
    USER_AGENT = os.getenv("PAGESPIDER_USER_AGENT")
    LOG_LEVEL = os.getenv("PAGESPIDER_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("PAGESPIDER_LOG_FILE")
    POOL_SIZE = int(os.getenv("PAGESPIDER_POOL_SIZE", "1"))


settings = Settings()


@dataclass
class SpiderTuning:
    """Tunable heuristics for the page spider.

    None of these values is a correctness guarantee: the settle delay trades
    throughput for capture completeness and the markers classify browser
    error messages that differ between engines and versions.
    """

    # Pause after the interaction phase (milliseconds)
    settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS

    # Case-insensitive substrings marking a navigation-interrupted error
    navigation_interrupted_markers: tuple[str, ...] = field(
        default_factory=lambda: tuple(DEFAULT_NAVIGATION_INTERRUPTED_MARKERS)
    )

    # How long a run that ignores the page timeout may keep its lease
    run_grace_ms: int = DEFAULT_RUN_GRACE_MS

    # How much earlier than the page timeout navigation gives up
    navigation_margin_ms: int = DEFAULT_NAVIGATION_MARGIN_MS

    def is_navigation_interrupted(self, error: BaseException) -> bool:
        """Check whether an exception came from an in-flight navigation."""
        message = str(error).lower()
        return any(marker.lower() in message for marker in self.navigation_interrupted_markers)

    def navigation_timeout_ms(self, page_timeout_ms: int) -> int:
        """Navigation timeout for a page timeout.

        Never less than half the page timeout, so short timeouts still
        leave navigation a usable window.
        """
        return max(page_timeout_ms - self.navigation_margin_ms, page_timeout_ms // 2, 1)

    @classmethod
    def from_env(cls) -> "SpiderTuning":
        """Load tuning from environment variables.

        Environment variables should be prefixed with PAGESPIDER_TUNING_
        e.g., PAGESPIDER_TUNING_SETTLE_DELAY_MS=2000. Markers are a
        comma-separated list.

        Returns:
            SpiderTuning with values from environment
        """
        tuning = cls()
        prefix = "PAGESPIDER_TUNING_"

        for field_name in tuning.__dataclass_fields__:
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            if field_name == "navigation_interrupted_markers":
                markers = tuple(m.strip() for m in env_value.split(",") if m.strip())
                if markers:
                    tuning.navigation_interrupted_markers = markers
                continue

            try:
                setattr(tuning, field_name, int(env_value))
            except ValueError:
                pass  # Keep default if conversion fails

        return tuning

    @classmethod
    def from_file(cls, path: str) -> "SpiderTuning":
        """Load tuning from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            SpiderTuning with values from file
        """
        tuning = cls()
        file_path = Path(path)

        if not file_path.exists():
            return tuning

        with open(file_path, 'r') as f:
            config = json.load(f)

        tuning_config = config.get('tuning', config)

        for field_name in tuning.__dataclass_fields__:
            if field_name in tuning_config:
                value = tuning_config[field_name]
                if field_name == "navigation_interrupted_markers":
                    value = tuple(value)
                setattr(tuning, field_name, value)

        return tuning

    def to_dict(self) -> dict:
        """Convert tuning to dictionary."""
        data = {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }
        data["navigation_interrupted_markers"] = list(self.navigation_interrupted_markers)
        return data

    def save_to_file(self, path: str) -> None:
        """Save current tuning to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'tuning': self.to_dict()}, f, indent=2)


# Global default tuning instance
default_tuning = SpiderTuning()
