import asyncio
import contextlib
import logging
from typing import Dict
from typing import Generator
from typing import Iterable
from typing import List
from typing import Match
from typing import NamedTuple
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING

import onigurumacffi

from highlight_markup.catalog import LanguageRegistration
from highlight_markup.errors import GrammarNotFound
from highlight_markup.errors import GrammarParseError
from highlight_markup.grammar import _Rule
from highlight_markup.grammar import Captures
from highlight_markup.grammar import Grammar
from highlight_markup.reg import _Reg
from highlight_markup.reg import _RegSet
from highlight_markup.reg import expand_escaped
from highlight_markup.reg import has_backref
from highlight_markup.reg import make_reg
from highlight_markup.reg import make_regset

if TYPE_CHECKING:
    from typing import Protocol
else:
    Protocol = object

logger = logging.getLogger(__name__)

Scope = Tuple[str, ...]
Regions = Tuple['Region', ...]
# (state, pos, anchor, regions)
SearchResult = Tuple['State', int, int, Regions]
# (regexes, rules) with includes flattened
Patterns = Tuple[List[str], Tuple[_Rule, ...]]

ERR_REG = make_reg(')this pattern always triggers an error when used(')


class Region(NamedTuple):
    start: int
    end: int
    scope: Scope


class State(NamedTuple):
    entries: Tuple['Entry', ...]
    while_stack: Tuple[Tuple['WhileRule', int], ...]

    @classmethod
    def root(cls, entry: 'Entry') -> 'State':
        return cls((entry,), ())

    @property
    def cur(self) -> 'Entry':
        return self.entries[-1]

    def push(self, entry: 'Entry') -> 'State':
        return self._replace(entries=(*self.entries, entry))

    def pop(self) -> 'State':
        return self._replace(entries=self.entries[:-1])

    def push_while(self, rule: 'WhileRule', entry: 'Entry') -> 'State':
        entries = (*self.entries, entry)
        while_stack = (*self.while_stack, (rule, len(entries)))
        return self._replace(entries=entries, while_stack=while_stack)

    def pop_while(self) -> 'State':
        entries, while_stack = self.entries[:-1], self.while_stack[:-1]
        return self._replace(entries=entries, while_stack=while_stack)


class CompiledRule(Protocol):
    @property
    def name(self) -> Tuple[str, ...]: ...

    def start(
            self,
            compiler: 'Compiler',
            match: Match[str],
            state: State,
            anchor: int,
    ) -> Tuple[State, int, Regions]:
        ...

    def search(
            self,
            compiler: 'Compiler',
            state: State,
            line: str,
            pos: int,
            first_line: bool,
            anchor: int,
    ) -> Optional[SearchResult]:
        ...


class CompiledRegsetRule(CompiledRule, Protocol):
    @property
    def regset(self) -> _RegSet: ...
    @property
    def u_rules(self) -> Tuple[_Rule, ...]: ...


class Entry(NamedTuple):
    scope: Scope
    rule: CompiledRule
    reg: _Reg = ERR_REG
    # the begin match ran to the end of its line: `\G` matches at the start
    # of each following line
    boundary: bool = False


def _inner_capture_parse(
        compiler: 'Compiler',
        start: int,
        s: str,
        scope: Scope,
        rule: CompiledRule,
) -> Regions:
    state = State.root(Entry(scope + rule.name, rule))
    _, regions = highlight_line(compiler, state, s, first_line=False)
    return tuple(
        r._replace(start=r.start + start, end=r.end + start) for r in regions
    )


def _captures(
        compiler: 'Compiler',
        scope: Scope,
        match: Match[str],
        captures: Captures,
) -> Regions:
    ret: List[Region] = []
    pos, pos_end = match.span()
    for i, u_rule in captures:
        try:
            group_s = match[i]
        except IndexError:  # grammars sometimes name groups that don't exist
            continue
        if not group_s:
            continue

        rule = compiler.compile_rule(u_rule)
        start, end = match.span(i)
        if start < pos:
            # nested capture: split the region which contains it
            j = len(ret) - 1
            while j > 0 and start < ret[j - 1].end:
                j -= 1

            oldtok = ret[j]
            newtok = []
            if start > oldtok.start:
                newtok.append(oldtok._replace(end=start))

            newtok.extend(
                _inner_capture_parse(
                    compiler, start, match[i], oldtok.scope, rule,
                ),
            )

            if end < oldtok.end:
                newtok.append(oldtok._replace(start=end))
            ret[j:j + 1] = newtok
        else:
            if start > pos:
                ret.append(Region(pos, start, scope))

            ret.extend(
                _inner_capture_parse(compiler, start, match[i], scope, rule),
            )

            pos = end

    if pos < pos_end:
        ret.append(Region(pos, pos_end, scope))
    return tuple(ret)


def _do_regset(
        idx: int,
        match: Optional[Match[str]],
        rule: CompiledRegsetRule,
        compiler: 'Compiler',
        state: State,
        pos: int,
        anchor: int,
) -> Optional[SearchResult]:
    if match is None:
        return None

    ret = []
    if match.start() > pos:
        ret.append(Region(pos, match.start(), state.cur.scope))

    target_rule = compiler.compile_rule(rule.u_rules[idx])
    state, anchor, regions = target_rule.start(compiler, match, state, anchor)
    ret.extend(regions)

    return state, match.end(), anchor, tuple(ret)


class PatternRule(NamedTuple):
    name: Tuple[str, ...]
    regset: _RegSet
    u_rules: Tuple[_Rule, ...]

    def start(
            self,
            compiler: 'Compiler',
            match: Match[str],
            state: State,
            anchor: int,
    ) -> Tuple[State, int, Regions]:
        raise AssertionError(f'unreachable {self}')

    def search(
            self,
            compiler: 'Compiler',
            state: State,
            line: str,
            pos: int,
            first_line: bool,
            anchor: int,
    ) -> Optional[SearchResult]:
        idx, match = self.regset.search(line, pos, first_line, pos == anchor)
        return _do_regset(idx, match, self, compiler, state, pos, anchor)


class MatchRule(NamedTuple):
    name: Tuple[str, ...]
    captures: Captures

    def start(
            self,
            compiler: 'Compiler',
            match: Match[str],
            state: State,
            anchor: int,
    ) -> Tuple[State, int, Regions]:
        scope = state.cur.scope + self.name
        return state, anchor, _captures(compiler, scope, match, self.captures)

    def search(
            self,
            compiler: 'Compiler',
            state: State,
            line: str,
            pos: int,
            first_line: bool,
            anchor: int,
    ) -> Optional[SearchResult]:
        raise AssertionError(f'unreachable {self}')


class EndRule(NamedTuple):
    name: Tuple[str, ...]
    content_name: Tuple[str, ...]
    begin_captures: Captures
    end_captures: Captures
    end: str
    regset: _RegSet
    u_rules: Tuple[_Rule, ...]

    def start(
            self,
            compiler: 'Compiler',
            match: Match[str],
            state: State,
            anchor: int,
    ) -> Tuple[State, int, Regions]:
        scope = state.cur.scope + self.name
        next_scope = scope + self.content_name

        boundary = match.end() == len(match.string)
        reg = make_reg(expand_escaped(match, self.end))
        state = state.push(Entry(next_scope, self, reg, boundary))
        regions = _captures(compiler, scope, match, self.begin_captures)
        return state, match.end(), regions

    def _end_ret(
            self,
            compiler: 'Compiler',
            state: State,
            pos: int,
            end_match: Match[str],
    ) -> SearchResult:
        ret = []
        if end_match.start() > pos:
            ret.append(Region(pos, end_match.start(), state.cur.scope))
        # `contentName` does not apply to the end match
        scope = state.cur.scope[:len(state.cur.scope) - len(self.content_name)]
        ret.extend(_captures(compiler, scope, end_match, self.end_captures))
        return state.pop(), end_match.end(), -1, tuple(ret)

    def search(
            self,
            compiler: 'Compiler',
            state: State,
            line: str,
            pos: int,
            first_line: bool,
            anchor: int,
    ) -> Optional[SearchResult]:
        allow_g = pos == anchor
        end_match = state.cur.reg.search(line, pos, first_line, allow_g)
        if end_match is not None and end_match.start() == pos:
            return self._end_ret(compiler, state, pos, end_match)

        idx, match = self.regset.search(line, pos, first_line, allow_g)
        if end_match is None:
            return _do_regset(idx, match, self, compiler, state, pos, anchor)
        elif match is None or end_match.start() < match.start():
            return self._end_ret(compiler, state, pos, end_match)
        else:
            return _do_regset(idx, match, self, compiler, state, pos, anchor)


class WhileRule(NamedTuple):
    name: Tuple[str, ...]
    content_name: Tuple[str, ...]
    begin_captures: Captures
    while_captures: Captures
    while_: str
    regset: _RegSet
    u_rules: Tuple[_Rule, ...]

    def start(
            self,
            compiler: 'Compiler',
            match: Match[str],
            state: State,
            anchor: int,
    ) -> Tuple[State, int, Regions]:
        scope = state.cur.scope + self.name
        next_scope = scope + self.content_name

        boundary = match.end() == len(match.string)
        reg = make_reg(expand_escaped(match, self.while_))
        state = state.push_while(self, Entry(next_scope, self, reg, boundary))
        regions = _captures(compiler, scope, match, self.begin_captures)
        return state, match.end(), regions

    def continues(
            self,
            compiler: 'Compiler',
            state: State,
            line: str,
            pos: int,
            first_line: bool,
            anchor: int,
    ) -> Optional[Tuple[int, int, Regions]]:
        match = state.cur.reg.match(line, pos, first_line, pos == anchor)
        if match is None:
            return None

        ret = _captures(compiler, state.cur.scope, match, self.while_captures)
        return match.end(), match.end(), ret

    def search(
            self,
            compiler: 'Compiler',
            state: State,
            line: str,
            pos: int,
            first_line: bool,
            anchor: int,
    ) -> Optional[SearchResult]:
        idx, match = self.regset.search(line, pos, first_line, pos == anchor)
        return _do_regset(idx, match, self, compiler, state, pos, anchor)


class Compiler:
    """compiles the rules of one grammar on demand"""

    def __init__(self, grammar: Grammar) -> None:
        self._grammar = grammar
        self._c_rules: Dict[_Rule, CompiledRule] = {}
        self._includes: Dict[str, Patterns] = {}
        self._c_patterns: Dict[Tuple[_Rule, ...], Patterns] = {}
        self.root = self._compile_root()

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.scope_name!r})'

    @property
    def scope_name(self) -> str:
        return self._grammar.scope_name

    @property
    def root_state(self) -> State:
        return State.root(Entry(self.root.name, self.root))

    def _include(self, s: str) -> Patterns:
        with contextlib.suppress(KeyError):
            return self._includes[s]

        ret = self._includes[s] = self._resolve_include(s)
        return ret

    def _resolve_include(self, s: str) -> Patterns:
        if s in ('$self', '$base'):
            return self._patterns(self._grammar.patterns)
        elif s.startswith('#'):
            try:
                rule = self._grammar.repository[s[1:]]
            except KeyError:
                logger.debug('%s: no repository entry %r', self.scope_name, s)
                return [], ()
            return self._patterns((rule,))
        else:
            logger.debug(
                '%s: ignoring include of another grammar %r',
                self.scope_name, s,
            )
            return [], ()

    def _patterns(
            self,
            rules: Tuple[_Rule, ...],
    ) -> Patterns:
        with contextlib.suppress(KeyError):
            return self._c_patterns[rules]

        ret = self._c_patterns[rules] = self._flatten(rules)
        return ret

    def _flatten(
            self,
            rules: Tuple[_Rule, ...],
    ) -> Patterns:
        ret_regs = []
        ret_rules: List[_Rule] = []
        for rule in rules:
            if rule.include is not None:
                tmp_regs, tmp_rules = self._include(rule.include)
                ret_regs.extend(tmp_regs)
                ret_rules.extend(tmp_rules)
            elif rule.match is None and rule.begin is None and rule.patterns:
                tmp_regs, tmp_rules = self._patterns(rule.patterns)
                ret_regs.extend(tmp_regs)
                ret_rules.extend(tmp_rules)
            elif rule.match is not None:
                ret_regs.append(rule.match)
                ret_rules.append(rule)
            elif rule.begin is not None:
                ret_regs.append(rule.begin)
                ret_rules.append(rule)
        return ret_regs, tuple(ret_rules)

    def _compile_root(self) -> PatternRule:
        regs, rules = self._patterns(self._grammar.patterns)
        return PatternRule((self.scope_name,), make_regset(*regs), rules)

    def _compile_rule(self, rule: _Rule) -> CompiledRule:
        assert rule.include is None, rule
        if rule.match is not None:
            return MatchRule(rule.name, rule.captures)
        elif rule.begin is not None and rule.while_ is not None:
            regs, rules = self._patterns(rule.patterns)
            return WhileRule(
                rule.name,
                rule.content_name,
                rule.begin_captures,
                rule.while_captures,
                rule.while_,
                make_regset(*regs),
                rules,
            )
        elif rule.begin is not None:
            regs, rules = self._patterns(rule.patterns)
            return EndRule(
                rule.name,
                rule.content_name,
                rule.begin_captures,
                rule.end_captures,
                # a begin with no end runs until the end of the document
                rule.end if rule.end is not None else r'(?!\G)\G',
                make_regset(*regs),
                rules,
            )
        else:
            regs, rules = self._patterns(rule.patterns)
            return PatternRule(rule.name, make_regset(*regs), rules)

    def compile_rule(self, rule: _Rule) -> CompiledRule:
        with contextlib.suppress(KeyError):
            return self._c_rules[rule]

        ret = self._c_rules[rule] = self._compile_rule(rule)
        return ret


def _regexes(rules: Iterable[_Rule]) -> Generator[str, None, None]:
    for rule in rules:
        if rule.match is not None:
            yield rule.match
        if rule.begin is not None:
            yield rule.begin
        # backreferences only compile once substituted from the begin match
        for s in (rule.end, rule.while_):
            if s is not None and not has_backref(s):
                yield s
        for captures in (
                rule.captures,
                rule.begin_captures,
                rule.end_captures,
                rule.while_captures,
        ):
            yield from _regexes(capture_rule for _, capture_rule in captures)
        yield from _regexes(rule.patterns)


class Registry:
    """language registrations by scope name, grammars are loaded on request"""

    def __init__(self, registrations: Iterable[LanguageRegistration]) -> None:
        self._registrations = {reg.scope_name: reg for reg in registrations}

    def _read_grammar(self, scope_name: str) -> Grammar:
        try:
            reg = self._registrations[scope_name]
        except KeyError:
            raise GrammarNotFound(scope_name, 'no language registration')

        if reg.grammar is not None:
            grammar = Grammar.from_data(reg.grammar)
        elif reg.path is not None:
            try:
                grammar = Grammar.from_filename(reg.path)
            except OSError as e:
                raise GrammarNotFound(scope_name, f'cannot read grammar: {e}')
        else:
            raise GrammarNotFound(scope_name, 'registration has no grammar')

        if grammar.scope_name != scope_name:
            raise GrammarParseError(
                scope_name,
                f'grammar declares scopeName {grammar.scope_name!r}',
            )

        rules = (*grammar.patterns, *grammar.repository.values())
        for s in _regexes(rules):
            try:
                onigurumacffi.compile(s)
            except onigurumacffi.OnigError as e:
                raise GrammarParseError(
                    scope_name, f'invalid regex {s!r}: {e}',
                )
        return grammar

    async def load_grammar(self, scope_name: str) -> Compiler:
        logger.debug('loading grammar %s', scope_name)
        grammar = await asyncio.to_thread(self._read_grammar, scope_name)
        compiler = Compiler(grammar)
        logger.debug('loaded grammar %s', scope_name)
        return compiler


def highlight_line(
        compiler: Compiler,
        state: State,
        line: str,
        first_line: bool,
) -> Tuple[State, Regions]:
    ret: List[Region] = []
    pos = 0
    anchor = 0 if state.cur.boundary else -1

    while_stack = []
    for while_rule, idx in state.while_stack:
        while_stack.append((while_rule, idx))
        while_state = State(state.entries[:idx], tuple(while_stack))

        while_res = while_rule.continues(
            compiler, while_state, line, pos, first_line, anchor,
        )
        if while_res is None:
            state = while_state.pop_while()
            anchor = -1
            break
        else:
            pos, anchor, regions = while_res
            ret.extend(regions)

    # an empty match which leaves the stack as it was would never advance
    seen = {(len(state.entries), id(state.cur.rule))}
    search_res = state.cur.rule.search(
        compiler, state, line, pos, first_line, anchor,
    )
    while search_res is not None:
        state, new_pos, anchor, regions = search_res
        ret.extend(regions)

        key = (len(state.entries), id(state.cur.rule))
        if new_pos > pos:
            seen = {key}
        elif key in seen:
            break
        else:
            seen.add(key)
        pos = new_pos

        search_res = state.cur.rule.search(
            compiler, state, line, pos, first_line, anchor,
        )

    if pos < len(line):
        ret.append(Region(pos, len(line), state.cur.scope))

    return state, tuple(ret)
