from __future__ import annotations


class EngineError(Exception):
    """Base class for errors raised by the fabric engine."""


class ConfigError(EngineError):
    pass


class MakingCostError(EngineError):
    """The external making-cost service failed or returned an unusable payload."""


class OptionFormulaError(EngineError):
    pass
