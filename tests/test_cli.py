"""
Tests for the command-line entry point and logging setup.
"""

import argparse
import logging

import pandas as pd
import pytest

from reefharvest.cli import _parse_sd, build_parser, load_configuration, main
from reefharvest.core.params import create_harvest_params, write_harvest_params
from reefharvest.logger import get_logger, logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_reefharvest_handler", False):
            logger.removeHandler(handler)
            handler.close()


class TestLoadConfiguration:
    """Tests for combining files and overrides."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        params, settings = load_configuration(args)

        assert params == create_harvest_params()
        assert settings.method == "auglag"

    def test_overrides(self):
        args = build_parser().parse_args(
            ["--periods", "6", "--effort-cap", "10", "--method", "cobyla"]
        )

        params, settings = load_configuration(args)

        assert params.periods == 6
        assert params.effort_cap == 10.0
        assert settings.method == "cobyla"

    def test_file_then_overrides(self, tmp_path):
        path = tmp_path / "reef.csv"
        write_harvest_params(create_harvest_params(periods=8, growth_rate=0.2), path)
        args = build_parser().parse_args(["--params", str(path), "--periods", "5"])

        params, _ = load_configuration(args)

        assert params.periods == 5
        assert params.growth_rate == 0.2

    def test_bad_sd_argument(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--sd", "periods=1"])

    def test_non_numeric_sd_keeps_cause(self):
        with pytest.raises(argparse.ArgumentTypeError) as excinfo:
            _parse_sd("growth_rate=wide")

        assert isinstance(excinfo.value.__cause__, ValueError)


class TestMain:
    """End-to-end runs of the CLI."""

    def test_single_run_writes_csv(self, tmp_path):
        out = tmp_path / "optimum.csv"

        code = main(["--periods", "3", "--max-evaluations", "200",
                     "--output", str(out), "--log-level", "WARNING"])

        assert code == 0
        frame = pd.read_csv(out)
        assert len(frame) == 3
        assert "harvest_total" in frame.columns

    def test_sweep_writes_mean(self, tmp_path):
        out = tmp_path / "mean.csv"

        code = main(["--periods", "2", "--max-evaluations", "100", "--trials", "2",
                     "--sd", "growth_rate=0.01", "--output", str(out),
                     "--log-level", "WARNING"])

        assert code == 0
        assert len(pd.read_csv(out)) == 2

    def test_prints_table(self, capsys):
        code = main(["--periods", "2", "--max-evaluations", "100", "--log-level", "ERROR"])

        assert code == 0
        assert "Total discounted utility" in capsys.readouterr().out

    def test_plot(self, tmp_path):
        pytest.importorskip("matplotlib")
        png = tmp_path / "summary.png"

        code = main(["--periods", "2", "--max-evaluations", "100",
                     "--output", str(tmp_path / "o.csv"), "--plot", str(png),
                     "--log-level", "WARNING"])

        assert code == 0
        assert png.exists()

    def test_configuration_error_exit_code(self):
        code = main(["--carrying-capacity", "0", "--log-level", "ERROR"])

        assert code == 2

    @pytest.mark.parametrize("trials", ["0", "-3"])
    def test_non_positive_trials_rejected(self, trials, capsys):
        code = main(["--periods", "2", "--trials", trials, "--log-level", "ERROR"])

        assert code == 2
        assert "Total discounted utility" not in capsys.readouterr().out


class TestLogger:
    """Tests for logging helpers."""

    def test_child_logger_names(self):
        assert get_logger("cli").name == "reefharvest.cli"
        assert get_logger("reefharvest.core.sweep").name == "reefharvest.core.sweep"
        assert get_logger() is logger

    def test_setup_does_not_duplicate_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG")

        ours = [h for h in logger.handlers if getattr(h, "_reefharvest_handler", False)]
        assert len(ours) == 1
        assert ours[0].level == logging.DEBUG

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"

        setup_logging("WARNING", log_file=log_file)
        get_logger("test").info("written to file only")
        for handler in logger.handlers:
            handler.flush()

        assert "written to file only" in log_file.read_text()

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("LOUD")
