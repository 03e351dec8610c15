"""Palette detection and colour masking on traced SVG markup.

AIDEV-NOTE: The palette is read from the markup the engine actually
emitted, not from the requested colour count. The engine merges similar
colours, so the two routinely differ.
"""

import re

from image2svg.models import NO_FILL

_FILL_ATTR = re.compile(r"""(?<![\w:-])fill\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_STYLE_ATTR = re.compile(r"""(?<![\w:-])style\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_STYLE_FILL = re.compile(r"(?:^|;)\s*fill\s*:\s*([^;]+)")
_DISPLAY_ATTR = re.compile(r"""\s+display\s*=\s*(?:"[^"]*"|'[^']*')""")
_RGB_FUNC = re.compile(r"rgb\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)")
_ELEMENT = re.compile(r"<(path|rect|circle|ellipse|polygon|polyline)\b[^>]*?/?>")


def _fill_values(markup: str):
    for match in _FILL_ATTR.finditer(markup):
        yield (match.group(1) if match.group(1) is not None else match.group(2)).strip()

    for match in _STYLE_ATTR.finditer(markup):
        style = match.group(1) if match.group(1) is not None else match.group(2)
        for fill in _STYLE_FILL.finditer(style):
            yield fill.group(1).strip()


def extract_palette(svg: str) -> frozenset:
    """Collect the distinct fill colours present in SVG markup.

    Args:
        svg: Vector markup returned by the tracing engine

    Returns:
        Set of fill values exactly as written, without the "none" sentinel
    """
    if not svg:
        return frozenset()
    return frozenset(
        value for value in _fill_values(svg) if value and value != NO_FILL
    )


def parse_color(value: str) -> "tuple[int, int, int] | None":
    """Parse a fill value into an RGB tuple.

    Handles #RGB, #RRGGBB and rgb(r, g, b); returns None for anything
    else, including "none".
    """
    value = value.strip()

    if value.startswith("#"):
        digits = value[1:]
        if len(digits) == 3:  # #RGB
            digits = "".join(c * 2 for c in digits)
        if len(digits) == 6:  # #RRGGBB
            try:
                return (
                    int(digits[0:2], 16),
                    int(digits[2:4], 16),
                    int(digits[4:6], 16),
                )
            except ValueError:
                return None
        return None

    match = _RGB_FUNC.fullmatch(value)
    if match:
        return (
            int(match.group(1)),
            int(match.group(2)),
            int(match.group(3)),
        )

    return None


def _element_fill(tag: str) -> "str | None":
    match = _FILL_ATTR.search(tag)
    if match:
        return (match.group(1) if match.group(1) is not None else match.group(2)).strip()
    style = _STYLE_ATTR.search(tag)
    if style:
        fill = _STYLE_FILL.search(style.group(1) or style.group(2) or "")
        if fill:
            return fill.group(1).strip()
    return None


def apply_hidden_colors(svg: str, hidden) -> str:
    """Hide every shape whose fill is in `hidden`.

    Presentation helper for the preview; the pipeline never calls it.

    Args:
        svg: Vector markup
        hidden: Fill values to suppress, compared verbatim

    Returns:
        Markup with matching shapes marked display="none"
    """
    hidden = set(hidden)
    if not svg or not hidden:
        return svg

    def hide(match: "re.Match[str]") -> str:
        tag = match.group(0)
        if _element_fill(tag) not in hidden:
            return tag
        closing = "/>" if tag.endswith("/>") else ">"
        # An element carries at most one display attribute
        body = _DISPLAY_ATTR.sub("", tag[: -len(closing)]).rstrip()
        return f'{body} display="none"{closing}'

    return _ELEMENT.sub(hide, svg)
