import hmac

from manga_stats.core.config import settings


def verify_trigger_secret(provided: str | None) -> bool:
    """Check a manual-trigger secret against REVALIDATION_SECRET.

    When no secret is configured every caller is accepted.
    """
    expected = settings.revalidation_secret
    if not expected:
        return True
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
