"""`GrammarLoadFailure`s abort building a highlighter, the rest are per call"""


class HighlightError(Exception):
    """base of every error raised by highlight_markup"""


class UnknownTheme(HighlightError, KeyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'unknown theme: {name!r}')

    def __str__(self) -> str:
        return self.args[0]


class UnknownLanguage(HighlightError, KeyError):
    def __init__(self, lang: str) -> None:
        self.lang = lang
        super().__init__(f'no language registration for {lang!r}')

    def __str__(self) -> str:
        return self.args[0]


class UnsupportedOperation(HighlightError):
    """eg tokenizing plaintext"""


InvalidOperation = UnsupportedOperation


class GrammarLoadFailure(HighlightError):
    def __init__(self, scope_name: str, reason: str) -> None:
        self.scope_name = scope_name
        self.reason = reason
        super().__init__(f'{scope_name}: {reason}')


class GrammarNotFound(GrammarLoadFailure):
    pass


class GrammarParseError(GrammarLoadFailure):
    pass


class MalformedThemeRule(HighlightError):
    """unsupported selector syntax, `Theme` skips these rules"""
