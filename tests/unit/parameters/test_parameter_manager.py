"""
Unit tests for the ParameterManager.
"""

import numpy as np
import pytest

from wirelattice.core.config import ThicknessType
from wirelattice.core.exceptions import ParameterError
from wirelattice.parameters.manager import ParameterManager, ParameterType
from wirelattice.parameters.modifiers import ModifierFile
from wirelattice.parameters.orbits import compute_orbits


@pytest.fixture
def brick5(load_network):
    return load_network("brick5")


class TestParameterType:
    """Tests for the parameter type enum."""

    def test_thickness_type(self):
        assert ParameterType.VERTEX.thickness_type == ThicknessType.PER_VERTEX
        assert ParameterType.EDGE.thickness_type == ThicknessType.PER_EDGE


class TestCreate:
    """Tests for managers without setting files."""

    def test_uniform_vertex_thickness(self, brick5):
        manager = ParameterManager.create(brick5, 0.5)
        assert manager.get_thickness_type() == ParameterType.VERTEX
        np.testing.assert_allclose(manager.evaluate_thickness(), np.full(9, 0.5))
        np.testing.assert_allclose(manager.evaluate_offset(), np.zeros((9, 3)))
        assert manager.get_num_dofs() == 0

    def test_edge_thickness(self, brick5):
        manager = ParameterManager.create(brick5, 0.3, ParameterType.EDGE)
        np.testing.assert_allclose(manager.evaluate_thickness({}), np.full(20, 0.3))

    @pytest.mark.parametrize("base", [0.0, -1.0])
    def test_base_thickness_positive(self, brick5, base):
        with pytest.raises(ParameterError, match="positive"):
            ParameterManager.create(brick5, base)


class TestSettingFiles:
    """Tests for managers bound to orbit and modifier files."""

    def test_thickness(self, brick5, data_dir):
        manager = ParameterManager.create_from_setting_file(
            brick5, 0.5, data_dir / "brick5.orbit", data_dir / "brick5.modifier"
        )
        assert manager.get_thickness_type() == ParameterType.VERTEX
        expected = np.array([0.6] * 8 + [0.4])
        np.testing.assert_allclose(manager.evaluate_thickness({}), expected)

    def test_offset(self, brick5, data_dir):
        manager = ParameterManager.create_from_setting_file(
            brick5, 0.5, data_dir / "brick5.orbit", data_dir / "brick5.modifier"
        )
        offsets = manager.evaluate_offset({})
        np.testing.assert_allclose(offsets[:8], 0.0)
        np.testing.assert_allclose(offsets[8], [0.0, 0.0, 0.25])

    def test_computed_orbits(self, brick5, data_dir):
        manager = ParameterManager.create_from_setting_file(
            brick5, 0.5, None, data_dir / "brick5.modifier"
        )
        assert manager.orbits.vertex_orbits == [list(range(8)), [8]]

    def test_no_modifier(self, brick5, data_dir):
        manager = ParameterManager.create_from_setting_file(
            brick5, 0.5, data_dir / "brick5.orbit", None
        )
        np.testing.assert_allclose(manager.evaluate_thickness(), 0.5)

    def test_design_variables(self, brick5, data_dir, temp_dir):
        path = temp_dir / "vars.modifier"
        path.write_text(
            "thickness:\n"
            "  type: edge_orbit\n"
            "  effective_orbits: [1]\n"
            "  thickness: ['{t} * 0.8']\n"
            "vertex_offset:\n"
            "  effective_orbits: [1]\n"
            "  offset_percentages: [[0, 0, '{dz}']]\n"
        )
        manager = ParameterManager.create_from_setting_file(
            brick5, 0.5, data_dir / "brick5.orbit", path
        )
        assert manager.get_thickness_type() == ParameterType.EDGE
        assert manager.get_variable_names() == ["dz", "t"]
        assert manager.get_num_dofs() == 2

        thickness = manager.evaluate_thickness({"t": 0.5, "dz": 0.0})
        np.testing.assert_allclose(thickness[:12], 0.5)
        np.testing.assert_allclose(thickness[12:], 0.4)
        offsets = manager.evaluate_offset({"t": 0.5, "dz": -0.2})
        np.testing.assert_allclose(offsets[8], [0.0, 0.0, -0.5])

    def test_missing_variable(self, brick5, data_dir, temp_dir):
        path = temp_dir / "vars.modifier"
        path.write_text(
            "thickness:\n  type: vertex_orbit\n  effective_orbits: [0]\n  thickness: ['{t}']\n"
        )
        manager = ParameterManager.create_from_setting_file(
            brick5, 0.5, data_dir / "brick5.orbit", path
        )
        with pytest.raises(ParameterError, match="Unknown design variable"):
            manager.evaluate_thickness({})

    def test_missing_orbit_reference(self, brick5, data_dir, temp_dir):
        path = temp_dir / "bad.modifier"
        path.write_text(
            "thickness:\n  type: vertex_orbit\n  effective_orbits: [5]\n  thickness: [0.3]\n"
        )
        with pytest.raises(ParameterError, match="missing vertex_orbit"):
            ParameterManager.create_from_setting_file(
                brick5, 0.5, data_dir / "brick5.orbit", path
            )


class TestOffsets:
    """Tests for symmetric vertex offsets."""

    def test_face_components_dropped(self, star_network):
        modifiers = ModifierFile(
            vertex_offset={"effective_orbits": [1], "offset_percentages": [[0.2, 0.1, 0.0]]}
        )
        manager = ParameterManager(star_network, 0.5, compute_orbits(star_network), modifiers)
        offsets = manager.evaluate_offset()
        # Vertex 1 lies on the x = -2.5 face: only its in-face component survives
        np.testing.assert_allclose(offsets[1], [0.0, 0.25, 0.0])
        np.testing.assert_allclose(offsets[0], 0.0)

    def test_orbit_members_move_alike(self, star_network):
        modifiers = ModifierFile(
            vertex_offset={"effective_orbits": [1], "offset_percentages": [[0.0, 0.1, 0.0]]}
        )
        manager = ParameterManager(star_network, 0.5, compute_orbits(star_network), modifiers)
        offsets = manager.evaluate_offset()
        # Periodic partners move identically so they stay partners
        np.testing.assert_allclose(offsets[1], offsets[2])
