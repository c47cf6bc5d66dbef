import pytest

from highlight_markup.colormap import ColorMap
from highlight_markup.grammar import Grammar
from highlight_markup.highlight import Compiler
from highlight_markup.resolver import StyleCache
from highlight_markup.theme import Theme
from highlight_markup.tokenizer import raw_tokens
from highlight_markup.tokenizer import RawToken
from highlight_markup.tokenizer import split_lines
from highlight_markup.tokenizer import ThemedToken
from highlight_markup.tokenizer import tokenize_with_theme

GRAMMAR = {
    'scopeName': 'test',
    'patterns': [
        {'match': r'\bdef\b', 'name': 'keyword.def'},
        {'match': '#.*$', 'name': 'comment.line'},
    ],
}
THEME = Theme.from_dct({
    'colors': {'foreground': '#cccccc', 'background': '#111111'},
    'tokenColors': [
        {
            'scope': 'keyword',
            'settings': {'foreground': '#ff0000', 'fontStyle': 'bold'},
        },
        {'scope': 'comment', 'settings': {'foreground': '#00ff00'}},
    ],
})


@pytest.fixture
def compiler():
    return Compiler(Grammar.from_data(GRAMMAR))


@pytest.mark.parametrize(
    ('code', 'expected'),
    (
        pytest.param('', [''], id='empty'),
        pytest.param('a', ['a'], id='one line'),
        pytest.param('a\nb', ['a', 'b'], id='two lines'),
        pytest.param('a\n', ['a', ''], id='trailing newline'),
        pytest.param('a\n\nb', ['a', '', 'b'], id='blank line'),
    ),
)
def test_split_lines(code, expected):
    assert split_lines(code) == expected


def test_raw_tokens(compiler):
    ret = list(raw_tokens(compiler, 'def x'))
    assert ret == [
        [
            RawToken(0, 3, ('keyword.def', 'test')),
            RawToken(3, 5, ('test',)),
        ],
    ]


def test_raw_tokens_newline_is_not_a_token(compiler):
    ret = list(raw_tokens(compiler, 'x\n'))
    assert ret == [[RawToken(0, 1, ('test',))], []]


def test_tokenize_with_theme(compiler):
    cmap = ColorMap()
    ret = tokenize_with_theme(THEME, cmap, 'def f  # hi\n\nx', compiler)
    bold = frozenset(('bold',))
    assert ret == [
        [
            ThemedToken('def', '#ff0000', bold),
            ThemedToken(' f  ', '#cccccc'),
            ThemedToken('# hi', '#00ff00'),
        ],
        [],
        [ThemedToken('x', '#cccccc')],
    ]
    assert list(cmap) == [(1, '#ff0000'), (2, '#cccccc'), (3, '#00ff00')]


def test_tokenize_with_theme_reuses_color_map(compiler):
    cmap = ColorMap(('#00ff00',))
    tokenize_with_theme(THEME, cmap, 'x # y', compiler)
    assert list(cmap) == [(1, '#00ff00'), (2, '#cccccc')]


def test_tokenize_with_theme_fills_style_cache(compiler):
    styles = StyleCache(THEME)
    tokenize_with_theme(THEME, ColorMap(), 'def x\ndef', compiler, styles)
    # (keyword.def, test) and (test,)
    assert len(styles) == 2
