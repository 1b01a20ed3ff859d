"""Global test configuration."""

from hypothesis import HealthCheck, settings

# Transfer property tests schedule many small tasks per example
settings.register_profile(
    "datalake_tests",
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile("datalake_tests")
