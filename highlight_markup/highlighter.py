import asyncio
import logging
from typing import Any
from typing import Dict
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Union

from highlight_markup.catalog import COMMON_LANGS
from highlight_markup.catalog import DEFAULT_THEME
from highlight_markup.catalog import get_language_registrations
from highlight_markup.catalog import get_theme
from highlight_markup.catalog import is_plaintext
from highlight_markup.catalog import LanguageRegistration
from highlight_markup.colormap import ColorMap
from highlight_markup.errors import UnknownLanguage
from highlight_markup.errors import UnknownTheme
from highlight_markup.errors import UnsupportedOperation
from highlight_markup.highlight import Compiler
from highlight_markup.highlight import Registry
from highlight_markup.renderer import render_to_html
from highlight_markup.renderer import render_to_svg
from highlight_markup.renderer import RenderOptions
from highlight_markup.resolver import StyleCache
from highlight_markup.theme import Theme
from highlight_markup.tokenizer import split_lines
from highlight_markup.tokenizer import ThemedLine
from highlight_markup.tokenizer import ThemedToken
from highlight_markup.tokenizer import tokenize_with_theme

logger = logging.getLogger(__name__)

ThemeOption = Union[str, Theme, Dict[str, Any], None]
LangsOption = Optional[Sequence[Union[str, LanguageRegistration]]]


class HighlighterOptions(NamedTuple):
    theme: ThemeOption = None
    langs: LangsOption = None


def _resolve_theme(theme: ThemeOption) -> Theme:
    if isinstance(theme, dict):
        theme = Theme.from_dct(theme)

    if isinstance(theme, Theme):
        if theme.name:
            return theme
    elif theme:
        try:
            return get_theme(theme)
        except UnknownTheme:
            logger.warning('unknown theme %r, using %r', theme, DEFAULT_THEME)

    return get_theme(DEFAULT_THEME)


class Highlighter:
    """a theme plus loaded grammars, see `get_highlighter`

    instances are only created once every grammar has loaded, the color
    map grows as new colors are seen and is shared by every render, as
    are resolved styles
    """

    def __init__(self, theme: Theme, grammars: Dict[str, Compiler]) -> None:
        self.theme = theme
        self.color_map = ColorMap()
        self.styles = StyleCache(theme)
        self._grammars = grammars

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.theme.name!r})'

    @classmethod
    async def create(
            cls,
            options: HighlighterOptions = HighlighterOptions(),
    ) -> 'Highlighter':
        theme = _resolve_theme(options.theme)
        langs = COMMON_LANGS if options.langs is None else options.langs
        registrations = get_language_registrations(langs)

        registry = Registry(registrations)
        compilers = await asyncio.gather(*(
            registry.load_grammar(reg.scope_name) for reg in registrations
        ))

        grammars = {}
        for reg, compiler in zip(registrations, compilers):
            for name in reg.names:
                grammars[name] = compiler
        return cls(theme, grammars)

    @property
    def langs(self) -> List[str]:
        return sorted(self._grammars)

    def _compiler(self, lang: str) -> Compiler:
        try:
            return self._grammars[lang]
        except KeyError:
            raise UnknownLanguage(lang)

    def _render_options(self) -> RenderOptions:
        return RenderOptions(bg=self.theme.bg, color_map=self.color_map)

    def _lines(self, code: str, lang: str) -> List[ThemedLine]:
        if is_plaintext(lang):
            return [
                [ThemedToken(line)] if line else []
                for line in split_lines(code)
            ]
        else:
            return self.code_to_themed_tokens(code, lang)

    def code_to_themed_tokens(self, code: str, lang: str) -> List[ThemedLine]:
        if is_plaintext(lang):
            raise UnsupportedOperation(f'cannot tokenize plaintext ({lang})')
        compiler = self._compiler(lang)
        return tokenize_with_theme(
            self.theme, self.color_map, code, compiler, self.styles,
        )

    def code_to_html(self, code: str, lang: str) -> str:
        lines = self._lines(code, lang)
        return render_to_html(lines, self._render_options())

    def code_to_svg(self, code: str, lang: str) -> str:
        lines = self._lines(code, lang)
        return render_to_svg(lines, self._render_options())


async def get_highlighter(
        theme: ThemeOption = None,
        langs: LangsOption = None,
) -> Highlighter:
    options = HighlighterOptions(theme=theme, langs=langs)
    return await Highlighter.create(options)
