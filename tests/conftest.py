"""Shared fixtures for ReefHarvest tests."""

import pytest

from reefharvest.core.params import create_harvest_params, create_optimizer_settings


@pytest.fixture
def reference_params():
    """The reference scenario: 24 periods, cap 15, no migration."""
    return create_harvest_params(
        initial_stock=1000.0,
        carrying_capacity=2000.0,
        growth_rate=0.1,
        harvest_constant=0.05,
        migration_constant=0.0,
        effort_cap=15.0,
        periods=24,
        discount_rate=0.95,
        utility_scaling_constant=1.0,
    )


@pytest.fixture
def short_params():
    """A short horizon with migration, small enough to optimize quickly."""
    return create_harvest_params(periods=4, migration_constant=0.02)


@pytest.fixture
def quick_settings():
    """Small evaluation budget for fast optimizer tests."""
    return create_optimizer_settings(max_evaluations=2000, relative_tolerance=1e-6)
