import html
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Sequence

from highlight_markup.colormap import ColorMap
from highlight_markup.tokenizer import ThemedToken

DEFAULT_BG = '#fff'

SVG_LINE_HEIGHT = 16
SVG_X = 10
# approximate width of a space, used to indent lines which start with one
SVG_INDENT_WIDTH = 5

Lines = Sequence[Sequence[ThemedToken]]


class RenderOptions(NamedTuple):
    bg: Optional[str] = None
    color_map: Optional[ColorMap] = None
    lang_id: Optional[str] = None


def escape(s: str) -> str:
    return html.escape(s, quote=False)


def _css(token: ThemedToken) -> str:
    decls = [f'color: {token.color}']
    if 'italic' in token.font_style:
        decls.append('font-style: italic')
    if 'bold' in token.font_style:
        decls.append('font-weight: bold')
    if 'underline' in token.font_style:
        decls.append('text-decoration: underline')
    return '; '.join(decls)


def render_to_html(
        lines: Lines,
        options: RenderOptions = RenderOptions(),
) -> str:
    bg = options.bg or DEFAULT_BG

    parts = [f'<pre class="shiki" style="background-color: {bg}">']
    if options.lang_id:
        lang_id = escape(options.lang_id)
        parts.append(f'<div class="language-id">{lang_id}</div>')
    parts.append('<code>')

    body: List[str] = []
    for line in lines:
        for token in line:
            content = escape(token.content)
            if token.color is None:
                body.append(content)
            else:
                body.append(f'<span style="{_css(token)}">{content}</span>')
        body.append('\n')
    # no trailing blank lines inside the block
    parts.append(''.join(body).rstrip('\n'))

    parts.append('</code></pre>')
    return ''.join(parts)


def _svg_line(index: int, line: Sequence[ThemedToken], cmap: ColorMap) -> str:
    y = SVG_LINE_HEIGHT * (index + 1)
    if line and not line[0].content.strip():
        x = SVG_X + SVG_INDENT_WIDTH * len(line[0].content)
    else:
        x = SVG_X

    if not line:
        return f'<text x="{x}" y="{y}"></text>'

    spans = []
    for token in line:
        if not token.content.strip():
            spans.append(token.content)
            continue

        idx = cmap.get(token.color)
        content = escape(token.content)
        if idx:
            spans.append(f'<tspan class="s-c-{idx}">{content}</tspan>')
        else:
            spans.append(f'<tspan>{content}</tspan>')
    return f'<text x="{x}" y="{y}"><tspan>{"".join(spans)}</tspan></text>'


def render_to_svg(
        lines: Lines,
        options: RenderOptions = RenderOptions(),
) -> str:
    bg = options.bg or DEFAULT_BG
    if options.color_map is None:
        cmap = ColorMap.from_lines(lines)
    else:
        cmap = options.color_map

    style = ''.join(f'.s-c-{idx}{{ fill: {color};}}' for idx, color in cmap)
    return '\n'.join((
        '<svg width="100%" height="100%" xmlns="http://www.w3.org/2000/svg">',
        f'<style>{style}</style>',
        f'<rect width="100%" height="100%" fill="{bg}" />',
        *(_svg_line(i, line, cmap) for i, line in enumerate(lines)),
        '</svg>',
    ))
