from typing import FrozenSet
from typing import Generator
from typing import List
from typing import NamedTuple
from typing import Optional

from highlight_markup.colormap import ColorMap
from highlight_markup.highlight import Compiler
from highlight_markup.highlight import highlight_line
from highlight_markup.resolver import ScopeStack
from highlight_markup.resolver import StyleCache
from highlight_markup.theme import Theme


class RawToken(NamedTuple):
    start: int
    end: int
    scopes: ScopeStack


class ThemedToken(NamedTuple):
    content: str
    color: Optional[str] = None
    font_style: FrozenSet[str] = frozenset()


ThemedLine = List[ThemedToken]


def split_lines(code: str) -> List[str]:
    return code.split('\n')


def raw_tokens(
        compiler: Compiler,
        code: str,
) -> Generator[List[RawToken], None, None]:
    """one list of tokens per line, scopes innermost first"""
    state = compiler.root_state
    for line_idx, line in enumerate(split_lines(code)):
        # grammars are written expecting the newline to be present
        state, regions = highlight_line(
            compiler, state, f'{line}\n', first_line=line_idx == 0,
        )
        yield [
            RawToken(start, min(end, len(line)), tuple(reversed(scope)))
            for start, end, scope in regions
            if start < len(line)
        ]


def tokenize_with_theme(
        theme: Theme,
        color_map: ColorMap,
        code: str,
        compiler: Compiler,
        styles: Optional[StyleCache] = None,
) -> List[ThemedLine]:
    if styles is None:
        styles = StyleCache(theme)
    assert styles.theme is theme, (styles.theme.name, theme.name)

    lines = split_lines(code)
    ret = []
    for line, tokens in zip(lines, raw_tokens(compiler, code)):
        themed_line = []
        for token in tokens:
            content = line[token.start:token.end]
            if not content:
                continue
            style = styles[token.scopes]
            color_map.add(style.color)
            themed_line.append(
                ThemedToken(content, style.color, style.font_style),
            )
        ret.append(themed_line)
    return ret
