"""
Pytest configuration and shared fixtures for image2svg tests.

Provides image payloads, a deterministic stand-in for the tracing engine
and Qt event-loop helpers for the worker and controller tests.
"""

import io
import sys
import time

import numpy as np
import pytest
import svg
from PIL import Image
from PyQt6.QtCore import QCoreApplication

from image2svg.image_processing.tracing import TracingEngineAdapter
from image2svg.models import PixelBuffer


def make_png(size=(100, 100), color=(255, 0, 0, 255), mode="RGBA") -> bytes:
    """Encode a solid-colour image as PNG bytes."""
    image = Image.new(mode, size, color)
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def make_buffer(width, height, color=(0, 0, 0, 255)) -> PixelBuffer:
    """Solid-colour PixelBuffer."""
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[...] = color
    return PixelBuffer(width, height, pixels)


class FakeEngine:
    """Stand-in for vtracer.convert_raw_image_to_svg.

    Emits one rect per distinct opaque colour in the PNG it receives, plus
    a transparent background rect, and records every call.
    """

    def __init__(self, fail_with=None, output=None):
        self.calls = []
        self.fail_with = fail_with
        self.output = output

    def __call__(self, img_bytes, img_format="png", **kwargs):
        self.calls.append({"img_bytes": img_bytes, "img_format": img_format, **kwargs})
        if self.fail_with is not None:
            raise self.fail_with
        if self.output is not None:
            return self.output

        image = Image.open(io.BytesIO(img_bytes)).convert("RGBA")
        pixels = np.array(image).reshape(-1, 4)
        opaque = np.unique(pixels[pixels[:, 3] > 0][:, :3], axis=0)

        elements = [svg.Rect(x=0, y=0, width=image.width, height=image.height, fill="none")]
        for r, g, b in opaque[:64]:
            elements.append(
                svg.Rect(
                    x=0,
                    y=0,
                    width=image.width,
                    height=image.height,
                    fill=f"#{int(r):02X}{int(g):02X}{int(b):02X}",
                )
            )
        canvas = svg.SVG(width=image.width, height=image.height, elements=elements)
        return canvas.as_str()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_tracer(fake_engine):
    return TracingEngineAdapter(engine=fake_engine)


@pytest.fixture
def red_png():
    return make_png(color=(255, 0, 0, 255))


@pytest.fixture
def blue_png():
    return make_png(color=(0, 0, 255, 255))


@pytest.fixture
def transparent_png():
    return make_png(color=(0, 0, 0, 0))


@pytest.fixture(scope="session")
def qapp():
    """Session-wide QCoreApplication for timers and queued signals."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1])
    yield app


@pytest.fixture
def wait_until(qapp):
    """Spin the Qt event loop until a predicate holds or time runs out."""

    def _wait(predicate, timeout=10.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            QCoreApplication.processEvents()
            if predicate():
                return True
            time.sleep(0.005)
        QCoreApplication.processEvents()
        return predicate()

    return _wait
