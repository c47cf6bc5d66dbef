import pytest

from highlight_markup.reg import _replace_esc
from highlight_markup.reg import expand_escaped
from highlight_markup.reg import make_reg
from highlight_markup.reg import make_regset


@pytest.mark.parametrize(
    ('s', 'chars', 'expected'),
    (
        pytest.param('abc', 'A', 'abc', id='no escapes'),
        pytest.param(r'\Aabc', 'A', '\\\uffffabc', id='replaced'),
        pytest.param(r'\Gabc', 'A', r'\Gabc', id='other escape untouched'),
        pytest.param(r'\\Aabc', 'A', r'\\Aabc', id='escaped backslash'),
        pytest.param(r'\A\G', 'AG', '\\\uffff\\\uffff', id='both'),
        pytest.param('abc\\', 'A', 'abc\\', id='trailing backslash'),
    ),
)
def test_replace_esc(s, chars, expected):
    assert _replace_esc(s, chars) == expected


def test_reg_backslash_a_only_on_first_line():
    reg = make_reg(r'\Aa')
    assert reg.search('aaa', 0, first_line=True, allow_g=False)
    assert not reg.search('aaa', 0, first_line=False, allow_g=False)


def test_reg_backslash_g_only_at_anchor():
    reg = make_reg(r'\Ga')
    match = reg.search('xa', 1, first_line=False, allow_g=True)
    assert match is not None and match.span() == (1, 2)
    assert not reg.search('xa', 1, first_line=False, allow_g=False)


def test_reg_match():
    reg = make_reg('> ')
    assert reg.match('> hi', 0, first_line=False, allow_g=False)
    assert not reg.match('hi > ', 0, first_line=False, allow_g=False)


def test_regset_search_returns_index():
    regset = make_regset('b', 'a')
    idx, match = regset.search('xab', 0, first_line=False, allow_g=False)
    assert idx == 1
    assert match is not None and match.span() == (1, 2)


def test_regset_empty():
    regset = make_regset()
    assert regset.search('anything', 0, True, True) == (-1, None)


def test_expand_escaped():
    match = make_reg('(["\'])').search('x"y', 0, False, False)
    assert match is not None
    assert expand_escaped(match, r'(\1)') == '(")'


def test_expand_escaped_special_characters():
    match = make_reg(r'(\*+)').search('**', 0, False, False)
    assert match is not None
    assert expand_escaped(match, r'\1/') == r'\*\*/'


def test_expand_escaped_escaped_backslash():
    match = make_reg('(a)').search('a', 0, False, False)
    assert match is not None
    assert expand_escaped(match, r'\\1') == r'\\1'
