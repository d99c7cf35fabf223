"""Exceptions raised by the loading, fitting and evaluation stages."""


class InvalidInput(ValueError):
    """Malformed or missing columns, empty data, or mismatched inputs."""


class DegenerateMetric(ValueError):
    """A metric is undefined for the given labels (for example zero variance)."""

    def __init__(self, metric: str, reason: str):
        super().__init__(f"{metric} is undefined: {reason}")
        self.metric = metric
        self.reason = reason
