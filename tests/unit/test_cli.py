"""
Tests for the command-line interface.
"""

import logging
from unittest.mock import patch

import numpy as np
import pytest
import structlog
from click.testing import CliRunner

from wirelattice.cli import _parse_variables, main
from wirelattice.geometry.mesh_operations import export_mesh
from wirelattice.inflator.periodic import InflationResult


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo the logging setup every CLI invocation performs."""
    yield
    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)
    logging.root.setLevel(logging.WARNING)
    structlog.reset_defaults()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_result(periodic_cube_mesh):
    vertices, faces = periodic_cube_mesh
    return InflationResult(
        vertices=vertices * 5.0 - 2.5,
        faces=faces,
        face_sources=np.array([0] * 10 + [-1, -1]),
        cell_min=np.full(3, -2.5),
        cell_max=np.full(3, 2.5),
    )


class TestInflateCommand:
    """Tests for `wirelattice inflate`."""

    def test_inflate(self, runner, data_dir, temp_dir, fake_result):
        output = temp_dir / "cube.stl"
        with patch("wirelattice.pipeline.inflate", return_value=fake_result) as mocked:
            result = runner.invoke(
                main,
                ["inflate", str(data_dir / "cube.wire"), "-o", str(output),
                 "-t", "0.4", "--samples", "12", "--subdiv", "1", "--scheme", "simple"],
            )
        assert result.exit_code == 0, result.output
        assert output.exists()
        assert "Joint faces" in result.output
        _, config = mocked.call_args.args
        assert config.profile_samples == 12
        assert config.refinement_iterations == 1
        assert config.refinement_scheme.value == "simple"
        assert config.thickness == (0.4,) * 12

    def test_inflate_with_settings(self, runner, data_dir, temp_dir, fake_result):
        with patch("wirelattice.pipeline.inflate", return_value=fake_result) as mocked:
            result = runner.invoke(
                main,
                ["inflate", str(data_dir / "brick5.wire"), "-o", str(temp_dir / "b.obj"),
                 "--orbit", str(data_dir / "brick5.orbit"),
                 "--modifier", str(data_dir / "brick5.modifier")],
            )
        assert result.exit_code == 0, result.output
        _, config = mocked.call_args.args
        assert len(config.thickness) == 9

    def test_inflate_config_file(self, runner, data_dir, temp_dir, fake_result):
        settings = temp_dir / "inflator.yaml"
        settings.write_text("inflator:\n  profile_samples: 5\n  joint_scale: 1.2\n")
        with patch("wirelattice.pipeline.inflate", return_value=fake_result) as mocked:
            result = runner.invoke(
                main,
                ["inflate", str(data_dir / "cube.wire"), "-o", str(temp_dir / "c.off"),
                 "--config", str(settings)],
            )
        assert result.exit_code == 0, result.output
        _, config = mocked.call_args.args
        assert config.profile_samples == 5
        assert config.joint_scale == 1.2

    def test_invalid_wire(self, runner, data_dir, temp_dir):
        result = runner.invoke(
            main, ["inflate", str(data_dir / "invalid.wire"), "-o", str(temp_dir / "x.stl")]
        )
        assert result.exit_code == 1
        assert "Load failed" in result.output

    def test_bad_variable(self, runner, data_dir, temp_dir):
        result = runner.invoke(
            main,
            ["inflate", str(data_dir / "cube.wire"), "-o", str(temp_dir / "x.stl"), "--var", "t"],
        )
        assert result.exit_code == 2

    def test_missing_output(self, runner, data_dir):
        result = runner.invoke(main, ["inflate", str(data_dir / "cube.wire")])
        assert result.exit_code != 0


class TestParseVariables:
    """Tests for NAME=VALUE parsing."""

    def test_parse(self):
        assert _parse_variables(("t=0.5", " dz = -0.1")) == {"t": 0.5, "dz": -0.1}

    @pytest.mark.parametrize("item", ["t", "=0.5", "t=abc"])
    def test_invalid(self, item):
        with pytest.raises(ValueError):
            _parse_variables((item,))


class TestInfoCommand:
    """Tests for `wirelattice info`."""

    def test_info(self, runner, data_dir):
        result = runner.invoke(main, ["info", str(data_dir / "brick5.wire")])
        assert result.exit_code == 0, result.output
        assert "Vertices" in result.output
        assert "Network is valid" in result.output

    def test_info_invalid(self, runner, data_dir):
        result = runner.invoke(main, ["info", str(data_dir / "invalid.wire")])
        assert result.exit_code == 1


class TestValidateCommand:
    """Tests for `wirelattice validate`."""

    def test_valid_mesh(self, runner, temp_dir, periodic_cube_mesh):
        path = export_mesh(*periodic_cube_mesh, temp_dir / "cube.stl")
        result = runner.invoke(main, ["validate", str(path)])
        assert result.exit_code == 0, result.output

    def test_non_periodic_mesh(self, runner, temp_dir, skewed_cube_mesh):
        path = export_mesh(*skewed_cube_mesh, temp_dir / "skewed.ply")
        result = runner.invoke(main, ["validate", str(path)])
        assert result.exit_code == 1

    def test_json_logs(self, runner, temp_dir, periodic_cube_mesh):
        path = export_mesh(*periodic_cube_mesh, temp_dir / "cube.off")
        result = runner.invoke(main, ["--json-logs", "--log-level", "debug", "validate", str(path)])
        assert result.exit_code == 0, result.output
