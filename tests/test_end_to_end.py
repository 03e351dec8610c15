"""
End-to-end tests running the real vtracer engine.
"""

from io import BytesIO

from PIL import Image

from image2svg.image_processing import VectorizationPipeline
from image2svg.image_processing.palette import parse_color
from image2svg.models import ProcessingRequest, VectorizerSettings


def _process(payload, settings=None):
    request = ProcessingRequest.create(
        "e2e", settings or VectorizerSettings(), image_payload=payload
    )
    return VectorizationPipeline().process(request)


def test_solid_red_traces_to_single_red_fill(red_png):
    result = _process(red_png)

    assert result.succeeded, result.error
    assert "<svg" in result.svg
    assert len(result.palette) == 1
    (color,) = result.palette
    assert parse_color(color) == (255, 0, 0)


def test_transparent_image_palette_has_no_sentinel(transparent_png):
    result = _process(transparent_png)

    assert result.succeeded, result.error
    assert "none" not in result.palette


def test_two_color_image_with_kmeans():
    image = Image.new("RGBA", (60, 60), (0, 0, 255, 255))
    image.paste((255, 255, 0, 255), (0, 0, 30, 60))
    output = BytesIO()
    image.save(output, format="PNG")

    settings = VectorizerSettings().with_changes(
        smooth_radius=0, simplify_strength=2, simplify_method="kmeans", cluster_seed=0
    )
    result = _process(output.getvalue(), settings)

    assert result.succeeded, result.error
    colors = {parse_color(c) for c in result.palette}
    assert colors == {(0, 0, 255), (255, 255, 0)}


def test_garbage_payload_fails_cleanly():
    result = _process(b"\x89PNG but not really")

    assert not result.succeeded
    assert result.svg is None
    assert result.correlation_id == "e2e"


def test_output_scale_applied(red_png):
    settings = VectorizerSettings().with_changes(scale=2.0)

    result = _process(red_png, settings)

    assert 'width="200" height="200" viewBox="0 0 100 100"' in result.svg
