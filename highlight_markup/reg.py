import functools
import re
from typing import Dict
from typing import Match
from typing import Optional
from typing import Tuple

import onigurumacffi

_BACKREF_RE = re.compile(r'((?<!\\)(?:\\\\)*)\\([0-9]+)')


def _replace_esc(s: str, chars: str) -> str:
    """replace the given escape sequences of `chars` with \\uffff"""
    if not any(f'\\{c}' in s for c in chars):
        return s

    b = []
    i = 0
    length = len(s)
    while i < length:
        try:
            sbs = s.index('\\', i)
        except ValueError:
            b.append(s[i:])
            break
        if sbs > i:
            b.append(s[i:sbs])
        b.append('\\')
        i = sbs + 1
        if i < length:
            if s[i] in chars:
                b.append('\uffff')
            else:
                b.append(s[i])
            i += 1
    return ''.join(b)


def _anchored(s: str, first_line: bool, allow_g: bool) -> str:
    # `\A` only matches on the first line, `\G` only at the anchor position
    chars = ''
    if not first_line:
        chars += 'A'
    if not allow_g:
        chars += 'G'
    return _replace_esc(s, chars) if chars else s


class _Reg:
    def __init__(self, s: str) -> None:
        self._pattern = s
        self._regs: Dict[Tuple[bool, bool], onigurumacffi._Pattern] = {}

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self._pattern!r})'

    def _get_reg(
            self,
            first_line: bool,
            allow_g: bool,
    ) -> onigurumacffi._Pattern:
        key = (first_line, allow_g)
        if key not in self._regs:
            pattern = _anchored(self._pattern, first_line, allow_g)
            self._regs[key] = onigurumacffi.compile(pattern)
        return self._regs[key]

    def search(
            self,
            line: str,
            pos: int,
            first_line: bool,
            allow_g: bool,
    ) -> Optional[Match[str]]:
        return self._get_reg(first_line, allow_g).search(line, pos)

    def match(
            self,
            line: str,
            pos: int,
            first_line: bool,
            allow_g: bool,
    ) -> Optional[Match[str]]:
        return self._get_reg(first_line, allow_g).match(line, pos)


class _RegSet:
    def __init__(self, *s: str) -> None:
        self._patterns = s
        self._regsets: Dict[Tuple[bool, bool], onigurumacffi._RegSet] = {}

    def __repr__(self) -> str:
        args = ', '.join(repr(s) for s in self._patterns)
        return f'{type(self).__name__}({args})'

    def _get_regset(
            self,
            first_line: bool,
            allow_g: bool,
    ) -> onigurumacffi._RegSet:
        key = (first_line, allow_g)
        if key not in self._regsets:
            patterns = [
                _anchored(s, first_line, allow_g) for s in self._patterns
            ]
            self._regsets[key] = onigurumacffi.compile_regset(*patterns)
        return self._regsets[key]

    def search(
            self,
            line: str,
            pos: int,
            first_line: bool,
            allow_g: bool,
    ) -> Tuple[int, Optional[Match[str]]]:
        if not self._patterns:
            return -1, None
        return self._get_regset(first_line, allow_g).search(line, pos)


def has_backref(s: str) -> bool:
    return _BACKREF_RE.search(s) is not None


def _group(match: Match[str], n: int) -> str:
    try:
        return match[n] or ''
    except IndexError:
        return ''


def expand_escaped(match: Match[str], s: str) -> str:
    """substitute backreferences in an `end` / `while` pattern"""
    return _BACKREF_RE.sub(
        lambda m: f'{m[1]}{re.escape(_group(match, int(m[2])))}', s,
    )


make_reg = functools.lru_cache()(_Reg)
make_regset = functools.lru_cache()(_RegSet)
