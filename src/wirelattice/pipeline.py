"""
Pipeline orchestrator for the end-to-end inflation workflow.

Chains: wire load -> cell fit -> parameter evaluation -> inflate -> export

Each step is a thin call into the library:
- Loading: core.wire_io
- Parameters: parameters.ParameterManager (orbit/modifier files)
- Inflation: inflator.inflate (trimesh + manifold booleans)
- Export: geometry.mesh_operations (trimesh writers)

A failed step stops the run; earlier step results are kept.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from wirelattice.core.config import InflatorConfig, ThicknessType
from wirelattice.core.logging import get_logger, log_context
from wirelattice.core.wire_io import load_wire
from wirelattice.core.wire_network import WireNetwork
from wirelattice.geometry.mesh_operations import export_mesh
from wirelattice.inflator.periodic import InflationResult, inflate
from wirelattice.parameters.manager import ParameterManager

logger = get_logger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for a single pipeline run."""

    wire_path: str
    half_size: float = 2.5
    thickness: float = 0.5
    per_vertex: bool = False
    orbit_file: Optional[str] = None
    modifier_file: Optional[str] = None
    variables: Dict[str, float] = field(default_factory=dict)
    inflator: InflatorConfig = field(default_factory=InflatorConfig)
    output_path: Optional[str] = None


@dataclass
class StepResult:
    """Result of a single pipeline step."""

    name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None
    duration_s: float = 0.0


@dataclass
class PipelineResult:
    """Result of a complete pipeline run."""

    success: bool
    network: Optional[WireNetwork] = None
    inflation: Optional[InflationResult] = None
    output_path: Optional[Path] = None
    steps: List[StepResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)
    step_completed: str = ""  # Last step that completed successfully

    @property
    def failure(self) -> Optional[BaseException]:
        """Exception of the failed step, if any."""
        for step in self.steps:
            if not step.success:
                return step.exception
        return None


# Type alias for progress callback: (step_name, fraction 0.0-1.0)
ProgressCallback = Callable[[str, float], None]


def _noop_callback(step: str, pct: float) -> None:
    pass


class Pipeline:
    """End-to-end wire inflation pipeline.

    Usage:
        pipeline = Pipeline()
        result = pipeline.execute(PipelineConfig(wire_path="cube.wire",
                                                 output_path="cube.stl"))
    """

    def __init__(self, progress_callback: Optional[ProgressCallback] = None):
        self._progress = progress_callback or _noop_callback

    def execute(self, config: PipelineConfig) -> PipelineResult:
        """Execute the pipeline: load -> fit -> parameters -> inflate -> export."""
        with log_context(wire=Path(config.wire_path).name):
            return self._execute(config)

    def _execute(self, config: PipelineConfig) -> PipelineResult:
        result = PipelineResult(success=False)

        step = self._run_step("load", lambda: self._load(config))
        if not self._record(result, step):
            return result
        network = step.data
        result.network = network

        inflator_config = config.inflator
        if inflator_config.thickness is None or config.orbit_file or config.modifier_file:
            step = self._run_step("parameters", lambda: self._parameters(network, config))
            if not self._record(result, step):
                return result
            inflator_config = step.data

        half = np.full(3, config.half_size)
        inflator_config = inflator_config.model_copy(
            update={"cell_min": tuple(-half), "cell_max": tuple(half)}
        )
        step = self._run_step("inflate", lambda: inflate(network, inflator_config))
        if not self._record(result, step):
            return result
        result.inflation = step.data

        if config.output_path:
            step = self._run_step(
                "export",
                lambda: export_mesh(
                    result.inflation.vertices,
                    result.inflation.faces,
                    config.output_path,
                    result.inflation.face_sources,
                ),
            )
            if not self._record(result, step):
                return result
            result.output_path = step.data

        result.success = True
        return result

    @staticmethod
    def _load(config: PipelineConfig) -> WireNetwork:
        network = load_wire(config.wire_path)
        network.compute_connectivity()
        half = np.full(3, config.half_size)
        network.scale_fit(-half, half)
        return network

    @staticmethod
    def _parameters(network: WireNetwork, config: PipelineConfig) -> InflatorConfig:
        """Evaluate thickness (and apply offsets) from orbit/modifier settings."""
        if config.orbit_file or config.modifier_file:
            manager = ParameterManager.create_from_setting_file(
                network, config.thickness, config.orbit_file, config.modifier_file
            )
        else:
            manager = ParameterManager.create(network, config.thickness)
            if not config.per_vertex:
                thickness = np.full(network.num_edges, config.thickness)
                return config.inflator.model_copy(
                    update={"thickness": tuple(thickness), "thickness_type": ThicknessType.PER_EDGE}
                )

        offsets = manager.evaluate_offset(config.variables)
        if np.any(offsets):
            network.offset(offsets)
        thickness = manager.evaluate_thickness(config.variables)
        return config.inflator.model_copy(
            update={
                "thickness": tuple(float(t) for t in thickness),
                "thickness_type": manager.get_thickness_type().thickness_type,
            }
        )

    def _record(self, result: PipelineResult, step: StepResult) -> bool:
        result.steps.append(step)
        if not step.success:
            result.errors.append(f"{step.name.capitalize()} failed: {step.error}")
            return False
        result.step_completed = step.name
        result.timings[step.name] = step.duration_s
        return True

    def _run_step(self, name: str, fn: Callable) -> StepResult:
        """Execute a single pipeline step with timing and error handling."""
        self._progress(name, 0.0)
        t0 = time.perf_counter()
        try:
            data = fn()
            duration = time.perf_counter() - t0
            self._progress(name, 1.0)
            logger.info("pipeline_step_complete", step=name, duration_s=round(duration, 2))
            return StepResult(name=name, success=True, data=data, duration_s=duration)
        except Exception as e:
            duration = time.perf_counter() - t0
            logger.error("pipeline_step_failed", step=name, duration_s=round(duration, 2), error=str(e))
            return StepResult(
                name=name, success=False, error=str(e), exception=e, duration_s=duration
            )
