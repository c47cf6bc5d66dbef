"""resolve a token's scope stack to a style from the theme

A rule's selector is a sequence of parts, ancestor first.  A part matches a
scope when its dot segments are a prefix of the scope's segments
(`entity.name` matches `entity.name.function.js`).  A selector matches a
scope stack when its parts match scopes in order, each one deeper than the
last.

Among matching rules the winner is the one with the greatest
`_precedence`: the number of segments of its deepest part, then its
position in the theme (later rules override earlier ones).  Color and font
style are resolved separately so a rule which only sets `fontStyle` does
not reset the color.
"""
from typing import Dict
from typing import FrozenSet
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Tuple

from highlight_markup.theme import Selector
from highlight_markup.theme import Theme

# innermost scope first
ScopeStack = Tuple[str, ...]
Segments = Tuple[str, ...]


class Style(NamedTuple):
    color: str
    font_style: FrozenSet[str] = frozenset()


def _part_matches(part: Segments, scope: Segments) -> bool:
    return scope[:len(part)] == part


def selector_matches(selector: Selector, stack: Sequence[Segments]) -> bool:
    """`stack` is outermost first"""
    i = 0
    for part in selector:
        while i < len(stack) and not _part_matches(part, stack[i]):
            i += 1
        if i == len(stack):
            return False
        i += 1
    return True


def _precedence(selector: Selector, index: int) -> Tuple[int, int]:
    return (len(selector[-1]), index)


def resolve(scopes: ScopeStack, theme: Theme) -> Style:
    stack = [tuple(scope.split('.')) for scope in reversed(scopes)]

    color: Optional[Tuple[Tuple[int, int], str]] = None
    font_style: Optional[Tuple[Tuple[int, int], FrozenSet[str]]] = None
    for i, rule in enumerate(theme.rules):
        if not selector_matches(rule.selector, stack):
            continue

        key = _precedence(rule.selector, i)
        if rule.foreground is not None:
            if color is None or key > color[0]:
                color = (key, rule.foreground)
        if rule.font_style is not None:
            if font_style is None or key > font_style[0]:
                font_style = (key, rule.font_style)

    return Style(
        color=theme.fg if color is None else color[1],
        font_style=frozenset() if font_style is None else font_style[1],
    )


class StyleCache:
    """memoized `resolve` for one theme, owned by a single highlighter"""

    def __init__(self, theme: Theme) -> None:
        self.theme = theme
        self._styles: Dict[ScopeStack, Style] = {}

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.theme.name!r})'

    def __len__(self) -> int:
        return len(self._styles)

    def __getitem__(self, scopes: ScopeStack) -> Style:
        try:
            return self._styles[scopes]
        except KeyError:
            ret = self._styles[scopes] = resolve(scopes, self.theme)
            return ret
