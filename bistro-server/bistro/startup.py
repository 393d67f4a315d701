from __future__ import annotations

from typing import Iterable, Tuple

from .config import Settings
from .observability import get_logger

logger = get_logger(__name__)


def _collect_missing(settings: Settings, pairs: Iterable[Tuple[str, str]]) -> list[str]:
    missing: list[str] = []
    for attr, label in pairs:
        value = getattr(settings, attr, None)
        if value in (None, "", [], {}):
            missing.append(label)
    return missing


def validate_settings(settings: Settings) -> None:
    """Fail fast when mandatory config values are missing for non-dev envs."""
    environment = (settings.environment or "dev").lower()

    required_pairs: list[Tuple[str, str]] = [("database_url", "DATABASE_URL")]
    if not settings.auth_disable_verification:
        required_pairs.extend(
            [
                ("auth_issuer", "AUTH_ISSUER"),
                ("auth_audience", "AUTH_AUDIENCE"),
            ]
        )

    missing = _collect_missing(settings, required_pairs)
    if environment in ("dev", "development", "test"):
        if missing:
            logger.warning(
                "Running in dev without recommended settings; some endpoints may be unavailable",
                missing=missing,
            )
        return

    if settings.auth_disable_verification:
        raise RuntimeError(f"AUTH_DISABLE_VERIFICATION is not allowed in environment '{environment}'")
    if missing:
        raise RuntimeError(
            f"Missing required configuration for environment '{environment}': {', '.join(sorted(missing))}"
        )
