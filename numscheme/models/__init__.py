from .counter_pattern import SchemeCounterPattern  # noqa: F401
