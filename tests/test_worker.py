"""Tests for the generation worker boundary."""

import pytest

from py_realmgen.core.biomes import BiomeOptions
from py_realmgen.core.generator import GenerationOptions
from py_realmgen.core.terrain import TerrainOptions
from py_realmgen.core.worker import (
    CompleteMessage,
    ErrorMessage,
    GenerationRequest,
    ProgressMessage,
    run_generation,
)


class TestGenerationRequest:
    def test_generation_id_defaults(self):
        a = GenerationRequest(seed="a", width=10, height=10)
        b = GenerationRequest(seed="a", width=10, height=10)
        assert a.generation_id
        assert a.generation_id != b.generation_id


class TestRunGeneration:
    """Test message streams for successful and failed runs."""

    def test_progress_then_complete(self, fast_options):
        messages = []
        request = GenerationRequest(generation_id="run-1", seed="worker", width=32, height=32)
        result = run_generation(request, messages.append, fast_options)

        assert isinstance(result, CompleteMessage)
        assert messages[-1] is result
        assert all(isinstance(m, ProgressMessage) for m in messages[:-1])
        assert len(messages) - 1 == len(result.world["progress"])
        assert {m.generation_id for m in messages} == {"run-1"}
        assert result.world["seed"] == "worker"

    def test_invalid_request_reports_error(self):
        messages = []
        result = run_generation(
            {"generation_id": "bad", "seed": "", "width": 10, "height": 10}, messages.append
        )
        assert messages == [result]
        assert isinstance(result, ErrorMessage)
        assert result.generation_id == "bad"
        assert result.error_type == "ValidationError"

    @pytest.mark.parametrize("width", [0, -5])
    def test_non_positive_dimensions(self, width):
        result = run_generation({"seed": "x", "width": width, "height": 10}, lambda m: None)
        assert isinstance(result, ErrorMessage)
        assert result.generation_id == ""

    def test_no_land_reports_degenerate_geometry(self):
        """An all-water world fails after the terrain stage."""
        options = GenerationOptions(
            terrain=TerrainOptions(erosion_iterations=100),
            biomes=BiomeOptions(deep_ocean_level=2.0, sea_level=2.0, beach_level=2.0),
        )
        messages = []
        request = GenerationRequest(generation_id="sea", seed="water", width=16, height=16)
        result = run_generation(request, messages.append, options)

        assert isinstance(result, ErrorMessage)
        assert result.error_type == "DegenerateGeometryError"
        assert result.generation_id == "sea"
        assert [m.type for m in messages] == ["progress", "progress", "error"]
