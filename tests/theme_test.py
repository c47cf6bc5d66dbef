import pytest

from highlight_markup.errors import MalformedThemeRule
from highlight_markup.theme import parse_font_style
from highlight_markup.theme import parse_selector
from highlight_markup.theme import Theme
from highlight_markup.theme import ThemeRule


@pytest.mark.parametrize(
    ('s', 'expected'),
    (
        pytest.param('foo', (('foo',),), id='single'),
        pytest.param('foo.bar', (('foo', 'bar'),), id='dotted'),
        pytest.param(
            'meta.tag  string.quoted',
            (('meta', 'tag'), ('string', 'quoted')),
            id='descendant',
        ),
        pytest.param(
            'entity.other.attribute-name.c++',
            (('entity', 'other', 'attribute-name', 'c++'),),
            id='punctuation in names',
        ),
    ),
)
def test_parse_selector(s, expected):
    assert parse_selector(s) == expected


@pytest.mark.parametrize(
    's',
    (
        pytest.param('', id='empty'),
        pytest.param('foo - bar', id='negation'),
        pytest.param('foo > bar', id='child'),
        pytest.param('(foo | bar)', id='group'),
        pytest.param('foo..bar', id='empty segment'),
        pytest.param('foo.', id='trailing dot'),
        pytest.param('L:foo', id='priority prefix'),
        pytest.param(123, id='not a string'),
    ),
)
def test_parse_selector_malformed(s):
    with pytest.raises(MalformedThemeRule):
        parse_selector(s)


@pytest.mark.parametrize(
    ('s', 'expected'),
    (
        pytest.param(None, None, id='unset'),
        pytest.param('', frozenset(), id='explicitly cleared'),
        pytest.param('bold', frozenset(('bold',)), id='bold'),
        pytest.param(
            'italic underline', frozenset(('italic', 'underline')),
            id='multiple',
        ),
        pytest.param('strikethrough', frozenset(), id='unknown'),
    ),
)
def test_parse_font_style(s, expected):
    assert parse_font_style(s) == expected


def test_theme_from_dct():
    theme = Theme.from_dct({
        'name': 'test',
        'colors': {'foreground': '#100000', 'background': '#aaaaaa'},
        'tokenColors': [
            {'scope': 'foo.bar', 'settings': {'foreground': '#200000'}},
            {'scope': 'foo', 'settings': {'fontStyle': 'bold'}},
            {'scope': 'parent foo.bar', 'settings': {'foreground': '#400000'}},
        ],
    })
    assert theme == Theme(
        name='test',
        bg='#aaaaaa',
        fg='#100000',
        rules=(
            ThemeRule((('foo', 'bar'),), '#200000', None),
            ThemeRule((('foo',),), None, frozenset(('bold',))),
            ThemeRule((('parent',), ('foo', 'bar')), '#400000', None),
        ),
    )


def test_theme_editor_colors_win():
    theme = Theme.from_dct({
        'colors': {
            'foreground': '#100000',
            'editor.foreground': '#200000',
            'background': '#300000',
            'editor.background': '#400000',
        },
        'tokenColors': [],
    })
    assert (theme.fg, theme.bg) == ('#200000', '#400000')


def test_theme_defaults():
    theme = Theme.from_dct({'tokenColors': []})
    assert theme == Theme(name='', bg=None, fg='#000000', rules=())


def test_theme_name_argument_wins():
    theme = Theme.from_dct({'name': 'Nord Theme'}, name='nord')
    assert theme.name == 'nord'


def test_theme_global_settings():
    theme = Theme.from_dct({
        'colors': {'foreground': '#100000'},
        'tokenColors': [
            {'settings': {'foreground': '#200000', 'background': '#300000'}},
            {'scope': '', 'settings': {'foreground': '#400000'}},
        ],
    })
    assert (theme.fg, theme.bg, theme.rules) == ('#400000', '#300000', ())


def test_theme_scope_lists():
    theme = Theme.from_dct({
        'tokenColors': [
            # some themes have a trailing comma
            {'scope': 'a, b.c,', 'settings': {'foreground': '#100000'}},
            {'scope': ['d', 'e'], 'settings': {'foreground': '#200000'}},
        ],
    })
    assert [rule.selector for rule in theme.rules] == [
        (('a',),), (('b', 'c'),), (('d',),), (('e',),),
    ]
    assert [rule.foreground for rule in theme.rules] == [
        '#100000', '#100000', '#200000', '#200000',
    ]


def test_theme_tmtheme_settings():
    theme = Theme.from_dct({
        'settings': [
            {'settings': {'foreground': '#100000'}},
            {'scope': 'string', 'settings': {'foreground': '#200000'}},
        ],
    })
    assert theme.fg == '#100000'
    assert theme.rules == (ThemeRule((('string',),), '#200000', None),)


def test_theme_malformed_rules_are_skipped():
    theme = Theme.from_dct({
        'tokenColors': [
            {'scope': 'a - b', 'settings': {'foreground': '#100000'}},
            {'scope': ['c', 5], 'settings': {'foreground': '#200000'}},
            {'scope': 'd > e, f', 'settings': {'foreground': '#300000'}},
        ],
    })
    assert theme.rules == (
        ThemeRule((('c',),), '#200000', None),
        ThemeRule((('f',),), '#300000', None),
    )


def test_theme_from_filename(tmp_path):
    path = tmp_path.joinpath('theme.json')
    path.write_text(
        '{\n'
        '    // comments are allowed\n'
        '    "colors": {"editor.foreground": "#100000"},\n'
        '    "tokenColors": [\n'
        '        {"scope": "a", "settings": {"foreground": "#200000"}}\n'
        '    ]\n'
        '}\n',
    )
    theme = Theme.from_filename(str(path), name='mine')
    assert theme == Theme(
        name='mine',
        bg=None,
        fg='#100000',
        rules=(ThemeRule((('a',),), '#200000', None),),
    )
