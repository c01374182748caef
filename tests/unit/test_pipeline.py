"""
Tests for the pipeline orchestrator.

Inflation is mocked so these tests validate step chaining, parameter
evaluation, partial failure, progress callbacks and result structure
without running boolean operations.
"""

from unittest.mock import patch

import numpy as np
import pytest

from wirelattice.core.config import InflatorConfig, ThicknessType
from wirelattice.core.exceptions import GeometryError, WireFormatError
from wirelattice.inflator.periodic import InflationResult
from wirelattice.pipeline import Pipeline, PipelineConfig, PipelineResult


@pytest.fixture
def fake_result(periodic_cube_mesh):
    vertices, faces = periodic_cube_mesh
    return InflationResult(
        vertices=vertices * 5.0 - 2.5,
        faces=faces,
        face_sources=np.arange(12) % 3,
        cell_min=np.full(3, -2.5),
        cell_max=np.full(3, 2.5),
    )


@pytest.fixture
def mock_inflate(fake_result):
    with patch("wirelattice.pipeline.inflate", return_value=fake_result) as mocked:
        yield mocked


class TestPipelineResult:
    """Tests for the result container."""

    def test_defaults(self):
        result = PipelineResult(success=False)
        assert result.steps == []
        assert result.errors == []
        assert result.step_completed == ""
        assert result.failure is None


class TestPipeline:
    """Tests for step chaining."""

    def test_uniform_edge_thickness(self, data_dir, mock_inflate):
        result = Pipeline().execute(PipelineConfig(wire_path=str(data_dir / "cube.wire")))
        assert result.success
        assert [step.name for step in result.steps] == ["load", "parameters", "inflate"]
        assert result.step_completed == "inflate"
        assert result.output_path is None

        network, config = mock_inflate.call_args.args
        assert config.thickness_type == ThicknessType.PER_EDGE
        assert config.thickness == (0.5,) * 12
        assert config.cell_min == (-2.5, -2.5, -2.5)
        assert config.cell_max == (2.5, 2.5, 2.5)
        np.testing.assert_allclose(network.get_bbox()[1], 2.5)

    def test_per_vertex(self, data_dir, mock_inflate):
        config = PipelineConfig(wire_path=str(data_dir / "cube.wire"), thickness=0.4, per_vertex=True)
        assert Pipeline().execute(config).success
        _, inflator_config = mock_inflate.call_args.args
        assert inflator_config.thickness_type == ThicknessType.PER_VERTEX
        assert inflator_config.thickness == (0.4,) * 8

    def test_explicit_thickness_skips_parameters(self, data_dir, mock_inflate):
        config = PipelineConfig(
            wire_path=str(data_dir / "cube.wire"),
            inflator=InflatorConfig(thickness=[0.3] * 12),
        )
        result = Pipeline().execute(config)
        assert [step.name for step in result.steps] == ["load", "inflate"]

    def test_setting_files(self, data_dir, mock_inflate):
        config = PipelineConfig(
            wire_path=str(data_dir / "brick5.wire"),
            orbit_file=str(data_dir / "brick5.orbit"),
            modifier_file=str(data_dir / "brick5.modifier"),
        )
        result = Pipeline().execute(config)
        assert result.success
        network, inflator_config = mock_inflate.call_args.args
        assert inflator_config.thickness_type == ThicknessType.PER_VERTEX
        np.testing.assert_allclose(inflator_config.thickness, [0.6] * 8 + [0.4])
        # The center vertex moved by 10% of the half-size along z
        np.testing.assert_allclose(network.vertices[8], [0.0, 0.0, 0.25])

    def test_export(self, data_dir, temp_dir, mock_inflate):
        output = temp_dir / "cube.ply"
        config = PipelineConfig(wire_path=str(data_dir / "cube.wire"), output_path=str(output))
        result = Pipeline().execute(config)
        assert result.success
        assert result.step_completed == "export"
        assert result.output_path == output
        assert output.exists()
        assert (temp_dir / "cube.sources.txt").exists()
        assert set(result.timings) == {"load", "parameters", "inflate", "export"}

    def test_progress_callback(self, data_dir, mock_inflate):
        calls = []
        Pipeline(lambda step, pct: calls.append((step, pct))).execute(
            PipelineConfig(wire_path=str(data_dir / "cube.wire"))
        )
        assert calls[:2] == [("load", 0.0), ("load", 1.0)]
        assert calls[-1] == ("inflate", 1.0)


class TestPipelineFailures:
    """Tests for partial failure."""

    def test_load_failure(self, data_dir, mock_inflate):
        result = Pipeline().execute(PipelineConfig(wire_path=str(data_dir / "invalid.wire")))
        assert not result.success
        assert len(result.steps) == 1
        assert result.errors[0].startswith("Load failed")
        assert isinstance(result.failure, WireFormatError)
        assert isinstance(result.failure, RuntimeError)
        mock_inflate.assert_not_called()

    def test_inflate_failure_keeps_earlier_steps(self, data_dir):
        with patch("wirelattice.pipeline.inflate", side_effect=GeometryError("degenerate")):
            result = Pipeline().execute(PipelineConfig(wire_path=str(data_dir / "cube.wire")))
        assert not result.success
        assert result.network is not None
        assert result.inflation is None
        assert result.step_completed == "parameters"
        assert "degenerate" in result.errors[0]
        assert isinstance(result.failure, GeometryError)

    def test_parameter_failure(self, data_dir, temp_dir, mock_inflate):
        path = temp_dir / "bad.modifier"
        path.write_text("thickness: [unclosed\n")
        config = PipelineConfig(wire_path=str(data_dir / "brick5.wire"), modifier_file=str(path))
        result = Pipeline().execute(config)
        assert not result.success
        assert result.steps[-1].name == "parameters"
        mock_inflate.assert_not_called()
