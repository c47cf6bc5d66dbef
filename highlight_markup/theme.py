import json
import logging
import re
from typing import Any
from typing import Dict
from typing import FrozenSet
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from highlight_markup.errors import MalformedThemeRule

logger = logging.getLogger(__name__)

# yes I know this is wrong, but it's good enough for now
UN_COMMENT = re.compile(r'^\s*//.*$', re.MULTILINE)
SELECTOR_PART = re.compile(r'^[\w+#$][\w+#$-]*(?:\.[\w+#$-]+)*$')
FONT_STYLES = frozenset(('bold', 'italic', 'underline'))

Selector = Tuple[Tuple[str, ...], ...]


def parse_selector(s: str) -> Selector:
    """parse `"meta.tag string.quoted"` into segment tuples, ancestor first

    only dotted scope names and the descendant combinator (whitespace) are
    understood, anything else is a `MalformedThemeRule`
    """
    if not isinstance(s, str):
        raise MalformedThemeRule(f'selector is not a string: {s!r}')
    parts = s.split()
    if not parts:
        raise MalformedThemeRule(f'empty selector: {s!r}')
    for part in parts:
        if not SELECTOR_PART.match(part):
            raise MalformedThemeRule(f'unsupported selector: {s!r}')
    return tuple(tuple(part.split('.')) for part in parts)


def parse_font_style(s: Optional[str]) -> Optional[FrozenSet[str]]:
    if s is None:
        return None
    else:
        return frozenset(s.split()) & FONT_STYLES


class ThemeRule(NamedTuple):
    selector: Selector
    foreground: Optional[str]
    font_style: Optional[FrozenSet[str]]


class Theme(NamedTuple):
    name: str
    bg: Optional[str]
    fg: str
    rules: Tuple[ThemeRule, ...]

    @classmethod
    def from_dct(cls, data: Dict[str, Any], name: str = '') -> 'Theme':
        colors = data.get('colors', {})
        fg = '#000000'
        bg = None

        for k in ('editor.foreground', 'foreground'):
            if k in colors:
                fg = colors[k]
                break

        for k in ('editor.background', 'background'):
            if k in colors:
                bg = colors[k]
                break

        rules: List[ThemeRule] = []
        for rule in data.get('tokenColors', data.get('settings', ())):
            settings = rule.get('settings', {})

            if 'scope' not in rule:
                scopes = ['']
            elif isinstance(rule['scope'], str):
                scopes = [
                    s.strip() for s in rule['scope'].split(',')
                    # some themes have a buggy trailing comma
                    if s.strip()
                ] or ['']
            else:
                scopes = rule['scope']

            for scope in scopes:
                if scope == '':
                    fg = settings.get('foreground', fg)
                    bg = settings.get('background', bg)
                    continue

                try:
                    selector = parse_selector(scope)
                except MalformedThemeRule as e:
                    logger.debug('%s: skipping theme rule: %s', name, e)
                    continue

                rules.append(
                    ThemeRule(
                        selector=selector,
                        foreground=settings.get('foreground'),
                        font_style=parse_font_style(settings.get('fontStyle')),
                    ),
                )

        return cls(
            name=name or data.get('name', ''),
            bg=bg,
            fg=fg,
            rules=tuple(rules),
        )

    @classmethod
    def from_filename(cls, filename: str, name: str = '') -> 'Theme':
        with open(filename, encoding='UTF-8') as f:
            contents = UN_COMMENT.sub('', f.read())
            return cls.from_dct(json.loads(contents), name=name)
