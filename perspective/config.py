"""Tunable numerical tolerances for perspective transforms."""

import logging
import math
import os
from dataclasses import dataclass, fields

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PERSPECTIVE_"


@dataclass
class TransformConfig:
    """All tunable parameters in one place."""

    # |det| below this counts as collinear (Triangle.is_collinear)
    collinear_tolerance: float = 0.01

    # Reciprocal condition number at or below this counts as non-invertible
    singular_tolerance: float = 1e-12

    # Convexity scalars s, t must be strictly greater than this
    convexity_threshold: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value):
                raise ValueError(f"{f.name} must be finite, got {value}")
        if self.collinear_tolerance < 0:
            raise ValueError(f"collinear_tolerance must be >= 0, got {self.collinear_tolerance}")
        if self.singular_tolerance < 0:
            raise ValueError(f"singular_tolerance must be >= 0, got {self.singular_tolerance}")

    @classmethod
    def from_env(cls) -> "TransformConfig":
        """Build a config from PERSPECTIVE_* environment variables.

        Unset variables keep their defaults.

        Returns:
            TransformConfig with overrides applied.

        Raises:
            ValueError: If a variable is set but is not a valid value.
        """
        overrides = {}
        for f in fields(cls):
            env_var = _ENV_PREFIX + f.name.upper()
            raw = os.environ.get(env_var)
            if raw is None or not raw.strip():
                continue
            try:
                overrides[f.name] = float(raw)
            except ValueError:
                raise ValueError(f"{env_var} must be a number, got {raw!r}") from None
            logger.debug(f"{env_var} = {overrides[f.name]}")

        try:
            return cls(**overrides)
        except ValueError as e:
            raise ValueError(f"Invalid {_ENV_PREFIX}* setting: {e}") from None
