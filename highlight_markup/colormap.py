from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from highlight_markup.tokenizer import ThemedToken


class ColorMap:
    """append-only color -> index, index 0 means "no color"

    a color keeps its index for the lifetime of the map, so every render
    from one highlighter names a color with the same css class
    """

    def __init__(self, colors: Iterable[str] = ()) -> None:
        self._colors: List[Optional[str]] = [None]
        self._indices: Dict[str, int] = {}
        for color in colors:
            self.add(color)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self._colors[1:]!r})'

    def __len__(self) -> int:
        return len(self._indices)

    def __contains__(self, color: object) -> bool:
        return color in self._indices

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        for color in self._colors[1:]:
            assert color is not None
            yield self._indices[color], color

    def add(self, color: str) -> int:
        try:
            return self._indices[color]
        except KeyError:
            ret = self._indices[color] = len(self._colors)
            self._colors.append(color)
            return ret

    def get(self, color: Optional[str]) -> int:
        if color is None:
            return 0
        else:
            return self._indices.get(color, 0)

    @classmethod
    def from_lines(
            cls,
            lines: Sequence[Sequence['ThemedToken']],
    ) -> 'ColorMap':
        return cls(
            token.color
            for line in lines
            for token in line
            if token.color is not None
        )
