"""Production configuration guard — enforces hard constraints in production.

The guard runs once at startup and fails hard (raises
``ProductionConfigError``) if any constraint is violated.  Other code should
not scatter ``if is_production`` checks.
"""

from __future__ import annotations

import logging

from closelake.config import DEFAULT_MARKETPLACE_ACCOUNT, MarketConfig

logger = logging.getLogger(__name__)


class ProductionConfigError(RuntimeError):
    """Raised when production configuration constraints are violated.

    The system cannot safely start in production mode with the current
    configuration.  Callers let it propagate so that the process
    exits.
    """


def enforce_production_constraints(config: MarketConfig) -> None:
    """Validate all production-critical configuration constraints.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. The marketplace account must be set to a real identity, not the
       development default.
    3. The event journal must be persisted to disk.

    Raises
    ------
    ProductionConfigError
        If any production constraint is violated.
    """
    if not config.is_production:
        return  # Guard only applies in production

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. Set CLOSELAKE_DEBUG=false."
        )

    if config.marketplace_account in ("", DEFAULT_MARKETPLACE_ACCOUNT):
        violations.append(
            "marketplace_account must be configured in production. "
            "Set CLOSELAKE_MARKETPLACE_ACCOUNT."
        )

    if config.journal_path is None:
        violations.append(
            "An in-memory journal is not allowed in production. "
            "Set CLOSELAKE_JOURNAL_PATH."
        )

    # Collect and report all violations at once
    if violations:
        msg = "Production configuration guard failed.\n" + "\n".join(
            f"  - {v}" for v in violations
        )
        logger.critical(msg)
        raise ProductionConfigError(msg)

    logger.info("Production configuration guard passed.")
