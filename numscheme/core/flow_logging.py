import logging

from numscheme.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "patterns":
        return settings.FLOW_LOGS_PATTERNS_ENABLED
    if category == "issuance":
        return settings.FLOW_LOGS_ISSUANCE_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
