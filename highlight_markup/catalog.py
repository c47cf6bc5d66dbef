import os.path
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple
from typing import Union

from highlight_markup.errors import UnknownLanguage
from highlight_markup.errors import UnknownTheme
from highlight_markup.theme import Theme

HERE = os.path.abspath(os.path.dirname(__file__))
THEMES_DIR = os.path.join(HERE, 'themes')
GRAMMARS_DIR = os.path.join(HERE, 'grammars')

DEFAULT_THEME = 'nord'
THEMES = ('monokai', 'nord')
PLAINTEXT = frozenset(('plaintext', 'txt', 'text'))


class LanguageRegistration(NamedTuple):
    id: str
    scope_name: str
    aliases: Tuple[str, ...] = ()
    # a grammar file, or the parsed grammar itself
    path: Optional[str] = None
    grammar: Optional[Dict[str, Any]] = None

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.id, *self.aliases)


def _lang(id: str, scope_name: str, *aliases: str) -> LanguageRegistration:
    path = os.path.join(GRAMMARS_DIR, f'{id}.tmLanguage.json')
    return LanguageRegistration(id, scope_name, aliases, path=path)


LANGUAGES = (
    _lang('diff', 'source.diff', 'patch'),
    _lang('ini', 'source.ini', 'properties'),
    _lang('json', 'source.json'),
    _lang('python', 'source.python', 'py'),
)
COMMON_LANGS = tuple(lang.id for lang in LANGUAGES)


def is_plaintext(lang: str) -> bool:
    return lang in PLAINTEXT


def get_theme(name: str) -> Theme:
    if name not in THEMES:
        raise UnknownTheme(name)
    filename = os.path.join(THEMES_DIR, f'{name}.json')
    return Theme.from_filename(filename, name=name)


def _by_name() -> Dict[str, LanguageRegistration]:
    return {name: lang for lang in LANGUAGES for name in lang.names}


def get_language_registrations(
        langs: Iterable[Union[str, LanguageRegistration]],
) -> List[LanguageRegistration]:
    """look up languages by id or alias, keeping order and dropping dupes

    `LanguageRegistration`s are passed through for custom grammars
    """
    by_name = _by_name()
    ret: List[LanguageRegistration] = []
    for lang in langs:
        if isinstance(lang, LanguageRegistration):
            reg = lang
        elif is_plaintext(lang):
            continue
        else:
            try:
                reg = by_name[lang]
            except KeyError:
                raise UnknownLanguage(lang)
        if reg not in ret:
            ret.append(reg)
    return ret
