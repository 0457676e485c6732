"""
Tests for ReefHarvest parameter structures, file I/O and validation.
"""

import dataclasses
import warnings

import numpy as np
import pandas as pd
import pytest

from reefharvest.core.params import (
    MODEL_PARAMETERS,
    ConfigurationError,
    HarvestParams,
    OptimizerSettings,
    check_harvest_params,
    create_harvest_params,
    create_optimizer_settings,
    read_harvest_params,
    with_overrides,
    write_harvest_params,
)


class TestCreateHarvestParams:
    """Tests for create_harvest_params."""

    def test_defaults(self):
        """Defaults are the reference scenario."""
        params = create_harvest_params()

        assert params.initial_stock == 1000.0
        assert params.carrying_capacity == 2000.0
        assert params.growth_rate == 0.1
        assert params.harvest_constant == 0.05
        assert params.migration_constant == 0.0
        assert params.effort_cap == 15.0
        assert params.periods == 24
        assert params.discount_rate == 0.95
        assert params.utility_scaling_constant == 1.0

    def test_overrides(self):
        params = create_harvest_params(periods=12, migration_constant=0.05)

        assert params.periods == 12
        assert params.migration_constant == 0.05
        assert params.n_variables == 24

    def test_periods_coerced_to_int(self):
        params = create_harvest_params(periods="6")

        assert params.periods == 6
        assert isinstance(params.periods, int)

    def test_fractional_periods_rejected(self):
        with pytest.raises(ConfigurationError, match="integer"):
            create_harvest_params(periods=2.5)

    def test_unknown_parameter(self):
        with pytest.raises(ConfigurationError, match="Unknown"):
            create_harvest_params(mortality=0.2)

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError, match="numeric"):
            create_harvest_params(growth_rate="fast")

    def test_frozen(self):
        params = create_harvest_params()

        with pytest.raises(dataclasses.FrozenInstanceError):
            params.periods = 3

    def test_with_overrides_returns_copy(self):
        params = create_harvest_params()
        changed = with_overrides(params, effort_cap=10)

        assert changed.effort_cap == 10.0
        assert params.effort_cap == 15.0

    def test_repr(self):
        text = repr(create_harvest_params())

        assert "HarvestParams" in text
        assert "periods=24" in text


class TestCreateOptimizerSettings:
    """Tests for optimizer settings."""

    def test_defaults(self):
        settings = create_optimizer_settings()

        assert settings.relative_tolerance == 1e-8
        assert settings.max_evaluations == 20000
        assert settings.method == "auglag"
        assert settings.initial_effort == 1.0

    def test_unknown_setting(self):
        with pytest.raises(ConfigurationError):
            create_optimizer_settings(population_size=10)


class TestParamsFileIO:
    """Tests for reading and writing parameter tables."""

    def test_write_read_roundtrip(self, tmp_path):
        params = create_harvest_params(periods=8, migration_constant=0.02)
        settings = create_optimizer_settings(method="cobyla", max_evaluations=500)
        path = tmp_path / "reef.csv"

        write_harvest_params(params, path, settings)
        read_params, read_settings = read_harvest_params(path)

        assert read_params == params
        assert read_settings == settings

    def test_written_table_layout(self, tmp_path):
        path = tmp_path / "reef.csv"
        write_harvest_params(create_harvest_params(), path)

        table = pd.read_csv(path)

        assert list(table.columns) == ["parameter", "value"]
        assert list(table["parameter"]) == list(MODEL_PARAMETERS)

    def test_partial_table_keeps_defaults(self, tmp_path):
        path = tmp_path / "reef.csv"
        path.write_text("parameter,value\nperiods,6\nrelative_tolerance,1e-4\n")

        params, settings = read_harvest_params(path)

        assert params.periods == 6
        assert params.effort_cap == 15.0
        assert settings.relative_tolerance == 1e-4
        assert settings.method == "auglag"

    def test_unknown_parameter_in_file(self, tmp_path):
        path = tmp_path / "reef.csv"
        path.write_text("parameter,value\nrecruitment,3\n")

        with pytest.raises(ConfigurationError, match="recruitment"):
            read_harvest_params(path)

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "reef.csv"
        path.write_text("name,amount\nperiods,6\n")

        with pytest.raises(ConfigurationError, match="columns"):
            read_harvest_params(path)

    def test_duplicated_parameter(self, tmp_path):
        path = tmp_path / "reef.csv"
        path.write_text("parameter,value\nperiods,6\nperiods,8\n")

        with pytest.raises(ConfigurationError, match="duplicated"):
            read_harvest_params(path)


class TestCheckHarvestParams:
    """Tests for check_harvest_params."""

    def test_valid_reference(self, reference_params):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert check_harvest_params(reference_params, OptimizerSettings())

    @pytest.mark.parametrize("capacity", [0.0, -100.0])
    def test_non_positive_carrying_capacity(self, capacity):
        params = create_harvest_params(carrying_capacity=capacity)

        with pytest.raises(ConfigurationError, match="carrying_capacity"):
            check_harvest_params(params)

    @pytest.mark.parametrize("periods", [0, -3])
    def test_non_positive_periods(self, periods):
        params = create_harvest_params(periods=periods)

        with pytest.raises(ConfigurationError, match="periods"):
            check_harvest_params(params)

    def test_negative_effort_cap(self):
        """Lower effort bound 0 above the cap is an empty range."""
        params = create_harvest_params(effort_cap=-1.0)

        with pytest.raises(ConfigurationError, match="bounds"):
            check_harvest_params(params)

    def test_non_finite_value(self):
        params = create_harvest_params(discount_rate=np.inf)

        with pytest.raises(ConfigurationError, match="finite"):
            check_harvest_params(params)

    def test_non_numeric_field(self):
        params = HarvestParams(growth_rate="0.1")

        with pytest.raises(ConfigurationError, match="number"):
            check_harvest_params(params)

    def test_warns_on_zero_catchability(self):
        params = create_harvest_params(harvest_constant=0.0)

        with pytest.warns(UserWarning, match="harvest_constant"):
            assert not check_harvest_params(params)

    def test_warns_on_aggressive_cap(self):
        params = create_harvest_params(harvest_constant=0.1, effort_cap=20.0)

        with pytest.warns(UserWarning, match="standing stock"):
            check_harvest_params(params)

    def test_unknown_method(self, reference_params):
        settings = OptimizerSettings(method="annealing")

        with pytest.raises(ConfigurationError, match="Unknown method"):
            check_harvest_params(reference_params, settings)

    @pytest.mark.parametrize("budget", [0, -10, 2.5, float("inf"), float("nan")])
    def test_bad_evaluation_budget(self, reference_params, budget):
        settings = OptimizerSettings(max_evaluations=budget)

        with pytest.raises(ConfigurationError, match="max_evaluations"):
            check_harvest_params(reference_params, settings)

    def test_bad_tolerance(self, reference_params):
        settings = OptimizerSettings(relative_tolerance=0.0)

        with pytest.raises(ConfigurationError, match="relative_tolerance"):
            check_harvest_params(reference_params, settings)

    def test_initial_effort_outside_bounds_warns(self):
        params = create_harvest_params(effort_cap=0.5)

        with pytest.warns(UserWarning, match="clipped"):
            check_harvest_params(params, OptimizerSettings())

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)
