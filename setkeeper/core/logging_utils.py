import logging

# Global project logger (can be tuned via logging_config)
logger = logging.getLogger("setkeeper")


def log_info(message: str) -> None:
    """
    Neutral information message.
    """
    logger.info("%s", message)


def log_step(message: str) -> None:
    """
    Action step / ongoing work.
    """
    logger.info("→ %s", message)


def log_success(message: str) -> None:
    """
    Successful outcome.
    """
    logger.info("✅ %s", message)


def log_warning(message: str) -> None:
    """
    Warning / non-fatal problem (skipped group, best-effort cleanup...).
    """
    logger.warning("⚠️ %s", message)


def log_error(message: str) -> None:
    """
    Error / fatal problem.
    """
    logger.error("❌ %s", message)


def log_debug(message: str) -> None:
    """
    Verbose diagnostics (ids, counts). Never pass tokens here.
    """
    logger.debug("%s", message)
