"""Output channel and logging setup."""

from code_ownership.monitoring.output import OutputChannelHandler, setup_logging, teardown_logging

__all__ = ["OutputChannelHandler", "setup_logging", "teardown_logging"]
