import json
from typing import Any
from typing import Dict
from typing import NamedTuple
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING

from highlight_markup.errors import GrammarParseError

if TYPE_CHECKING:
    from typing import Protocol
else:
    Protocol = object

Captures = Tuple[Tuple[int, '_Rule'], ...]


def _split_name(s: Optional[str]) -> Tuple[str, ...]:
    if s is None:
        return ()
    else:
        return tuple(s.split())


class _Rule(Protocol):
    """hax for recursive types python/mypy#731"""
    @property
    def name(self) -> Tuple[str, ...]: ...
    @property
    def match(self) -> Optional[str]: ...
    @property
    def begin(self) -> Optional[str]: ...
    @property
    def end(self) -> Optional[str]: ...
    @property
    def while_(self) -> Optional[str]: ...
    @property
    def content_name(self) -> Tuple[str, ...]: ...
    @property
    def captures(self) -> Captures: ...
    @property
    def begin_captures(self) -> Captures: ...
    @property
    def end_captures(self) -> Captures: ...
    @property
    def while_captures(self) -> Captures: ...
    @property
    def include(self) -> Optional[str]: ...
    @property
    def patterns(self) -> 'Tuple[_Rule, ...]': ...


def _captures(dct: Dict[str, Any], key: str) -> Captures:
    return tuple(
        (int(k), Rule.from_dct(v)) for k, v in dct.get(key, {}).items()
    )


class Rule(NamedTuple):
    name: Tuple[str, ...]
    match: Optional[str]
    begin: Optional[str]
    end: Optional[str]
    while_: Optional[str]
    content_name: Tuple[str, ...]
    captures: Captures
    begin_captures: Captures
    end_captures: Captures
    while_captures: Captures
    include: Optional[str]
    patterns: Tuple[_Rule, ...]

    @classmethod
    def from_dct(cls, dct: Dict[str, Any]) -> _Rule:
        begin = dct.get('begin')
        end = dct.get('end')
        while_ = dct.get('while')

        captures = _captures(dct, 'captures')
        begin_captures = _captures(dct, 'beginCaptures')
        end_captures = _captures(dct, 'endCaptures')
        while_captures = _captures(dct, 'whileCaptures')

        # `captures` on a begin/end or begin/while rule applies to both ends
        if begin and end and captures:
            begin_captures = end_captures = captures
            captures = ()
        elif begin and while_ and captures:
            begin_captures = while_captures = captures
            captures = ()

        return cls(
            name=_split_name(dct.get('name')),
            match=dct.get('match'),
            begin=begin,
            end=end,
            while_=while_,
            content_name=_split_name(dct.get('contentName')),
            captures=captures,
            begin_captures=begin_captures,
            end_captures=end_captures,
            while_captures=while_captures,
            include=dct.get('include'),
            patterns=tuple(Rule.from_dct(d) for d in dct.get('patterns', ())),
        )


class Grammar(NamedTuple):
    scope_name: str
    patterns: Tuple[_Rule, ...]
    repository: Dict[str, _Rule]

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> 'Grammar':
        if not isinstance(data, dict):
            raise GrammarParseError('<unknown>', 'grammar is not an object')
        scope_name = data.get('scopeName', '<unknown>')
        try:
            return cls(
                scope_name=data['scopeName'],
                patterns=tuple(Rule.from_dct(d) for d in data['patterns']),
                repository={
                    k: Rule.from_dct(dct)
                    for k, dct in data.get('repository', {}).items()
                },
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise GrammarParseError(scope_name, f'invalid grammar: {e!r}')

    @classmethod
    def from_filename(cls, filename: str) -> 'Grammar':
        with open(filename, encoding='UTF-8') as f:
            try:
                data = json.load(f)
            except ValueError as e:
                raise GrammarParseError(filename, f'invalid json: {e}')
        return cls.from_data(data)
