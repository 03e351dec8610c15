"""
Tests for the tracing engine adapter.

Tests cover:
- Option translation to vtracer arguments
- Output document shaping (scale, viewBox, strokes)
- Engine failure handling
"""

import io

import numpy as np
import pytest
from PIL import Image

from conftest import FakeEngine, make_buffer
from image2svg.errors import TracingError
from image2svg.image_processing.tracing import (
    TracingEngineAdapter,
    encode_png,
    engine_options,
    shape_document,
)
from image2svg.models import TracingOptions

ENGINE_SVG = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<svg version="1.1" xmlns="http://www.w3.org/2000/svg" width="20" height="10">\n'
    '<path d="M0 0 L20 0 L20 10 Z" fill="#FF0000" transform="translate(0,0)"/>\n'
    "</svg>\n"
)


class TestEngineOptions:
    def test_defaults(self):
        kwargs = engine_options(TracingOptions(), 100, 100)

        assert kwargs == {
            "colormode": "color",
            "hierarchical": "stacked",
            "mode": "spline",
            "filter_speckle": 4,
            "color_precision": 6,
            "layer_difference": 32,
            "corner_threshold": 60,
            "length_threshold": 4.0,
            "max_iterations": 10,
            "splice_threshold": 45,
            "path_precision": 2,
        }

    def test_square_corners_uses_polygon_mode(self):
        kwargs = engine_options(TracingOptions(square_corners=True), 10, 10)
        assert kwargs["mode"] == "polygon"

    def test_length_threshold_clamped(self):
        assert engine_options(TracingOptions(line_threshold=1.0), 10, 10)["length_threshold"] == 3.5
        assert engine_options(TracingOptions(line_threshold=50), 10, 10)["length_threshold"] == 10.0

    def test_min_color_ratio_raises_speckle_floor(self):
        kwargs = engine_options(TracingOptions(min_color_ratio=0.01), 100, 100)
        # 1% of 10000 px is 100 px -> 10 px square
        assert kwargs["filter_speckle"] == 10

    def test_speckle_clamped(self):
        kwargs = engine_options(TracingOptions(min_shape_size=1000), 10, 10)
        assert kwargs["filter_speckle"] == 128

    def test_fewer_colors_widen_layer_gap(self):
        few = engine_options(TracingOptions(color_count=2), 10, 10)
        many = engine_options(TracingOptions(color_count=64), 10, 10)
        assert few["layer_difference"] > many["layer_difference"]


class TestShapeDocument:
    def test_default_keeps_size_and_adds_viewbox(self):
        result = shape_document(ENGINE_SVG, TracingOptions(), 20, 10)

        assert 'width="20" height="10" viewBox="0 0 20 10">' in result
        assert 'xmlns="http://www.w3.org/2000/svg"' in result
        assert "stroke" not in result

    def test_scale_multiplies_output_size(self):
        result = shape_document(ENGINE_SVG, TracingOptions(scale=2.5), 20, 10)
        assert 'width="50" height="25" viewBox="0 0 20 10"' in result

    def test_viewbox_mode_drops_fixed_size(self):
        result = shape_document(ENGINE_SVG, TracingOptions(use_viewbox=True), 20, 10)

        root = result[result.index("<svg"):result.index(">", result.index("<svg")) + 1]
        assert "width=" not in root
        assert 'viewBox="0 0 20 10"' in root

    def test_stroke_width_adds_matching_stroke(self):
        result = shape_document(ENGINE_SVG, TracingOptions(stroke_width=1.5), 20, 10)
        assert 'fill="#FF0000" stroke="#FF0000" stroke-width="1.5"' in result

    def test_missing_root_rejected(self):
        with pytest.raises(TracingError):
            shape_document("<html></html>", TracingOptions(), 1, 1)


class TestTracingEngineAdapter:
    def test_engine_receives_png_and_options(self):
        engine = FakeEngine(output=ENGINE_SVG)
        adapter = TracingEngineAdapter(engine=engine)
        buffer = make_buffer(20, 10, (255, 0, 0, 255))

        svg = adapter.trace(buffer, TracingOptions())

        call = engine.calls[0]
        assert call["img_format"] == "png"
        assert call["filter_speckle"] == 4
        decoded = Image.open(io.BytesIO(call["img_bytes"]))
        assert decoded.size == (20, 10)
        assert svg.startswith("<?xml")
        assert 'fill="#FF0000"' in svg

    def test_engine_exception_becomes_tracing_error(self):
        adapter = TracingEngineAdapter(engine=FakeEngine(fail_with=RuntimeError("boom")))

        with pytest.raises(TracingError, match="boom"):
            adapter.trace(make_buffer(4, 4), TracingOptions())

    @pytest.mark.parametrize("output", ["", "   \n", None])
    def test_empty_output_rejected(self, output):
        adapter = TracingEngineAdapter(engine=lambda *args, **kwargs: output)

        with pytest.raises(TracingError):
            adapter.trace(make_buffer(4, 4), TracingOptions())

    def test_pre_blur_applied_when_requested(self):
        engine = FakeEngine(output=ENGINE_SVG)
        adapter = TracingEngineAdapter(engine=engine)
        buffer = make_buffer(12, 12, (0, 0, 0, 255))
        buffer.pixels[6, 6, :3] = (12, 12, 12)

        adapter.trace(buffer, TracingOptions(blur_radius=2, blur_delta=100))

        assert buffer.pixels[6, 6, 0] < 12

    def test_encode_png_round_trip_pixels(self):
        buffer = make_buffer(3, 2, (1, 2, 3, 4))
        decoded = np.array(Image.open(io.BytesIO(encode_png(buffer))))
        np.testing.assert_array_equal(decoded, buffer.pixels)
